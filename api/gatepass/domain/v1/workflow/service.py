from __future__ import annotations

import logging
from typing import Dict, List

from gatepass.core.db.repo.models import ERole, WarehouseWorkflowStep
from gatepass.core.errors import ConflictError, NotFoundError, ValidationError
from gatepass.domain.workflow.engine import WorkflowEngine, new_id
from gatepass.domain.workflow.ledger import StatusTransition
from gatepass.domain.workflow.ports import WorkflowStore
from gatepass.domain.v1.workflow.schema import (
    WorkflowStepCreate, WorkflowStepUpdate, WorkflowStepOut, WorkflowStepChangeOut,
    WorkflowStepDeleteOut, VisitorTypeWorkflowOut, WorkflowStepBrief,
)
from gatepass.utils.helper.helper import validate_step_no, validate_uuid

log = logging.getLogger(__name__)


class WorkflowTemplateService:
    def __init__(self, store: WorkflowStore, engine: WorkflowEngine):
        self.store = store
        self.engine = engine

    # ---------- tiny helpers ----------
    async def _require_approver(self, approver_id: str) -> None:
        user = await self.store.get_user(approver_id)
        if user is None or not user.is_active:
            raise NotFoundError(f"Approver not found: {approver_id}")
        if user.role not in (ERole.APPROVER.value, ERole.ADMIN.value):
            raise ValidationError("Approver must be a user with the Approver or Admin role")

    async def _ensure_step_free(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, approver_id: str,
        *, exclude_id: str | None = None,
    ) -> None:
        taken = await self.store.find_step(warehouse_id, visitor_type_id, step_no, exclude_id=exclude_id)
        if taken is not None:
            if taken.approver_id == approver_id:
                msg = "Workflow step already exists for this warehouse and visitor type"
            else:
                msg = f"Step {step_no} is already assigned for this warehouse and visitor type"
            raise ConflictError(msg, details={"existing_step_id": taken.id})

    # ---------- reads ----------
    async def list_for_warehouse(self, warehouse_id: str) -> List[VisitorTypeWorkflowOut]:
        warehouse_id = validate_uuid(warehouse_id, "warehouse_id")
        if await self.store.get_warehouse(warehouse_id) is None:
            raise NotFoundError("Warehouse not found")

        grouped: Dict[str, VisitorTypeWorkflowOut] = {}
        for view in await self.store.list_steps_for_warehouse(warehouse_id):
            key = view.step.visitor_type_id
            if key not in grouped:
                grouped[key] = VisitorTypeWorkflowOut(
                    visitor_type_id=key, visitor_type=view.visitor_type_name, steps=[]
                )
            grouped[key].steps.append(
                WorkflowStepBrief(
                    id=view.step.id,
                    step_no=view.step.step_no,
                    approver_id=view.step.approver_id,
                    approver=view.approver_name,
                )
            )
        return list(grouped.values())

    # ---------- writes ----------
    async def add_step(self, body: WorkflowStepCreate) -> WorkflowStepChangeOut:
        step = WarehouseWorkflowStep(
            id=new_id(),
            warehouse_id=validate_uuid(body.warehouse_id, "warehouse_id"),
            visitor_type_id=validate_uuid(body.visitor_type_id, "visitor_type_id"),
            step_no=validate_step_no(body.step_no),
            approver_id=validate_uuid(body.approver_id, "approver_id"),
        )

        async with self.store.transaction():
            if await self.store.get_warehouse(step.warehouse_id) is None:
                raise NotFoundError("Warehouse not found")
            if await self.store.get_visitor_type(step.visitor_type_id) is None:
                raise NotFoundError("Visitor type not found")
            await self._require_approver(step.approver_id)
            await self._ensure_step_free(step.warehouse_id, step.visitor_type_id, step.step_no, step.approver_id)

            await self.store.add_step(step)
            backfilled = await self.engine.reconcile_ledger_for_template_change(
                step.warehouse_id, step.visitor_type_id
            )

        log.info(
            "workflow step %s added: warehouse=%s visitor_type=%s step=%d approver=%s",
            step.id, step.warehouse_id, step.visitor_type_id, step.step_no, step.approver_id,
        )
        return WorkflowStepChangeOut(step=WorkflowStepOut.model_validate(step), affected_request_ids=backfilled)

    async def update_step(self, step_id: str, body: WorkflowStepUpdate) -> WorkflowStepOut:
        step_id = validate_uuid(step_id, "id")
        step_no = validate_step_no(body.step_no)
        approver_id = validate_uuid(body.approver_id, "approver_id")

        async with self.store.transaction():
            step = await self.store.get_step(step_id)
            if step is None:
                raise NotFoundError("Workflow entry not found")
            await self._require_approver(approver_id)

            await self._ensure_step_free(
                step.warehouse_id, step.visitor_type_id, step_no, approver_id, exclude_id=step.id
            )

            # existing ledgers are snapshots; only future requests see the edit
            step.step_no = step_no
            step.approver_id = approver_id
            await self.store.save_step(step)

        log.info("workflow step %s updated: step=%d approver=%s", step.id, step_no, approver_id)
        return WorkflowStepOut.model_validate(step)

    async def delete_step(self, step_id: str) -> WorkflowStepDeleteOut:
        """
        Remove a template step and retract the approval rows generated from it
        on in-flight requests, then re-aggregate those requests.

        Retracting a row can leave every remaining row approved, so a request
        may complete here. Its notification goes out after the commit.
        """
        step_id = validate_uuid(step_id, "id")
        transitions: List[StatusTransition] = []

        async with self.store.transaction():
            step = await self.store.get_step(step_id)
            if step is None:
                raise NotFoundError("Workflow entry not found")

            affected = await self.store.delete_approvals_for_step(
                step.warehouse_id, step.visitor_type_id, step.step_no, step.approver_id
            )
            await self.store.delete_step(step)

            for request_id in affected:
                request = await self.store.get_request(request_id, for_update=True)
                if request is None:
                    continue
                transitions.append(await self.engine.recompute_status(request, hold_on_slot_conflict=True))

        log.info("workflow step %s deleted; %d in-flight request(s) retracted", step_id, len(affected))
        for transition in transitions:
            await self.engine.dispatch(transition)

        return WorkflowStepDeleteOut(
            id=step_id,
            affected_request_ids=affected,
            completed_request_ids=[t.request_id for t in transitions if t.is_terminal],
        )
