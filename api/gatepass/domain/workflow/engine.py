# gatepass/domain/workflow/engine.py
from __future__ import annotations

import logging
import uuid
from typing import List

from gatepass.core.db.repo.models import Approval, EApprovalStatus, ERequestStatus, VisitorRequest
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.ledger import StatusTransition, aggregate_status, first_rejection_reason
from gatepass.domain.workflow.ports import Notifier, WorkflowStore
from gatepass.domain.workflow.slot_guard import SlotGuard

log = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class WorkflowEngine:
    """
    Approval-chain mechanics shared by the visitor, approval and workflow
    services: ledger instantiation, backfill after template additions and
    status aggregation with its terminal side effects.

    Every method here runs inside the caller's ``store.transaction()``, except
    ``dispatch`` which must only be called after that transaction committed.
    """

    def __init__(self, store: WorkflowStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier
        self.slot_guard = SlotGuard(store)

    # ---------- instantiation ----------
    async def instantiate_ledger(self, request: VisitorRequest) -> List[Approval]:
        """Snapshot the current template for the request into pending approvals."""
        steps = await self.store.list_steps(request.warehouse_id, request.visitor_type_id)
        if not steps:
            log.warning(
                "no workflow steps for warehouse=%s visitor_type=%s; request %s stays pending",
                request.warehouse_id, request.visitor_type_id, request.id,
            )
            return []

        rows = [
            Approval(
                id=new_id(),
                visitor_request_id=request.id,
                step_no=step.step_no,
                approver_id=step.approver_id,
                status=EApprovalStatus.PENDING.value,
                reason=None,
                decided_at=None,
            )
            for step in sorted(steps, key=lambda s: s.step_no)
        ]
        await self.store.add_approvals(rows)
        log.info("ledger for request %s: %d step(s)", request.id, len(rows))
        return rows

    async def reconcile_ledger_for_template_change(self, warehouse_id: str, visitor_type_id: str) -> List[str]:
        """
        Backfill pending requests that were created while the template was empty.

        Only requests with zero approval rows are touched; a non-empty ledger
        is a frozen snapshot and later template edits never reach it.
        """
        backfilled: List[str] = []
        for request in await self.store.list_unledgered_pending_requests(warehouse_id, visitor_type_id):
            if await self.instantiate_ledger(request):
                backfilled.append(request.id)
        if backfilled:
            log.info(
                "backfilled %d request(s) for warehouse=%s visitor_type=%s",
                len(backfilled), warehouse_id, visitor_type_id,
            )
        return backfilled

    # ---------- aggregation ----------
    async def recompute_status(
        self, request: VisitorRequest, *, hold_on_slot_conflict: bool = False
    ) -> StatusTransition:
        """
        Re-aggregate the ledger and persist the request status.

        An approval that would double-book the slot raises ``ConflictError``.
        With ``hold_on_slot_conflict`` the request is left pending instead, for
        callers whose own change must commit regardless.
        """
        previous = ERequestStatus(request.status)
        rows = await self.store.list_approvals(request.id)
        current = aggregate_status(r.status for r in rows)
        reason = first_rejection_reason(rows) if current == ERequestStatus.REJECTED else None

        if current != previous:
            if current == ERequestStatus.APPROVED:
                try:
                    await self.slot_guard.check_approval(request)
                except ConflictError:
                    if not hold_on_slot_conflict:
                        raise
                    log.warning("request %s left pending: its time slot is already booked", request.id)
                    return StatusTransition(request_id=request.id, previous=previous, current=previous)
            request.status = current.value
            await self.store.save_request(request)
            log.info("request %s: %s -> %s", request.id, previous.value, current.value)

        return StatusTransition(request_id=request.id, previous=previous, current=current, reason=reason)

    # ---------- side effects ----------
    async def dispatch(self, transition: StatusTransition) -> bool:
        """
        Send the terminal-outcome notification for a committed transition.

        Returns True when a notification was handed to the notifier. Failures
        are logged and swallowed: a mail outage never undoes a decision.
        """
        if not transition.is_terminal:
            return False

        request = await self.store.get_request(transition.request_id)
        if request is None or not request.email:
            log.info("request %s has no email on file; skipping notification", transition.request_id)
            return False

        try:
            if transition.current == ERequestStatus.APPROVED:
                warehouse = await self.store.get_warehouse(request.warehouse_id)
                slot = await self.store.get_time_slot(request.warehouse_time_slot_id)
                await self.notifier.notify_approved(
                    request.email, request.tracking_code, warehouse, slot, request.date,
                    visitor_name=request.name,
                )
            else:
                await self.notifier.notify_rejected(
                    request.email, request.tracking_code, transition.reason,
                    visitor_name=request.name,
                )
        except Exception:
            log.exception("notification for request %s failed", transition.request_id)
            return False
        return True
