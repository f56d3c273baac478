from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Dict, List, Optional

from gatepass.core.config.config import settings
from gatepass.core.db.repo.models import Approval, EApprovalStatus, ERequestStatus
from gatepass.core.errors import ConflictError, NotFoundError, ValidationError
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.workflow.ledger import is_actionable
from gatepass.domain.workflow.ports import Actor, WorkflowStore
from gatepass.domain.v1.approval.schema import (
    ApprovalOut, ApprovalTaskOut, DecisionIn, DecisionOut, RequestSummaryOut,
)
from gatepass.utils.helper.helper import clean_text, now_local, validate_uuid

log = logging.getLogger(__name__)

DECISIONS = {EApprovalStatus.APPROVED.value, EApprovalStatus.REJECTED.value}


def parse_decision(raw: str) -> EApprovalStatus:
    value = (raw or "").strip().lower()
    if value not in DECISIONS:
        raise ValidationError("decision must be 'approved' or 'rejected'", details={"field": "decision"})
    return EApprovalStatus(value)


class ApprovalService:
    def __init__(
        self,
        store: WorkflowStore,
        engine: WorkflowEngine,
        *,
        clock: Callable[[], dt.datetime] = now_local,
        enforce_step_order: Optional[bool] = None,
    ):
        self.store = store
        self.engine = engine
        self.clock = clock
        self.enforce_step_order = (
            settings.ENFORCE_STEP_ORDER if enforce_step_order is None else enforce_step_order
        )

    # ---------- queries ----------
    async def pending_for_approver(self, approver_id: str) -> List[ApprovalTaskOut]:
        """
        Rows the approver can act on right now.

        Only pending rows on pending requests are considered, and each one
        must pass the step gate against its own request's ledger.
        """
        approver_id = validate_uuid(approver_id, "approver_id")
        pairs = await self.store.list_approvals_for_approver(approver_id, [EApprovalStatus.PENDING.value])

        ledgers: Dict[str, List[Approval]] = {}
        tasks: List[ApprovalTaskOut] = []
        for row, request in pairs:
            if request.status != ERequestStatus.PENDING.value:
                continue
            if request.id not in ledgers:
                ledgers[request.id] = await self.store.list_approvals(request.id)
            if not is_actionable(row, ledgers[request.id]):
                continue
            tasks.append(
                ApprovalTaskOut(
                    approval=ApprovalOut.model_validate(row),
                    request=RequestSummaryOut.model_validate(request),
                )
            )
        return tasks

    async def history_for_approver(self, approver_id: str) -> List[ApprovalTaskOut]:
        approver_id = validate_uuid(approver_id, "approver_id")
        pairs = await self.store.list_approvals_for_approver(
            approver_id, [EApprovalStatus.APPROVED.value, EApprovalStatus.REJECTED.value]
        )
        pairs.sort(key=lambda p: p[0].decided_at or dt.datetime.min.replace(tzinfo=dt.timezone.utc), reverse=True)
        return [
            ApprovalTaskOut(
                approval=ApprovalOut.model_validate(row),
                request=RequestSummaryOut.model_validate(request),
            )
            for row, request in pairs
        ]

    # ---------- decisions ----------
    async def decide(self, actor: Actor, approval_id: str, body: DecisionIn) -> DecisionOut:
        approval_id = validate_uuid(approval_id, "id")
        decision = parse_decision(body.decision)
        reason = clean_text(body.reason)
        if decision == EApprovalStatus.REJECTED and not reason:
            raise ValidationError("reason is required when rejecting", details={"field": "reason"})

        async with self.store.transaction():
            row = await self.store.get_approval(approval_id, for_update=True)
            if row is None or row.approver_id != actor.user_id:
                raise NotFoundError("Approval not found")

            request = await self.store.get_request(row.visitor_request_id, for_update=True)
            if request is None:
                raise NotFoundError("Visitor request not found")
            if request.status != ERequestStatus.PENDING.value:
                raise ConflictError(f"Visitor request is already {request.status}")
            if row.status != EApprovalStatus.PENDING.value:
                raise ConflictError(f"This step was already {row.status}")

            if self.enforce_step_order:
                ledger = await self.store.list_approvals(request.id)
                if not is_actionable(row, ledger):
                    raise ConflictError(f"Step {row.step_no - 1} must be approved first")

            if decision == EApprovalStatus.APPROVED:
                await self.engine.slot_guard.check_approval(request)

            row.status = decision.value
            row.reason = reason
            row.decided_at = self.clock()
            await self.store.save_approval(row)

            transition = await self.engine.recompute_status(request)

        log.info(
            "approval %s %s by %s (request %s now %s)",
            row.id, decision.value, actor.user_id, request.id, transition.current.value,
        )
        notified = await self.engine.dispatch(transition)
        return DecisionOut(
            approval=ApprovalOut.model_validate(row),
            request_status=transition.current.value,
            notified=notified,
        )
