"""
Contracts the workflow engine depends on.

``WorkflowStore`` is implemented by the SQLAlchemy store in
``gatepass.core.db.repo.workflow.workflow_repo`` and by the in-memory store the
tests use. ``Notifier`` is implemented by the SMTP dispatcher in
``gatepass.core.notify.email_service``.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import AsyncContextManager, Iterable, List, Optional, Protocol, Sequence, Tuple

from gatepass.core.db.repo.models import (
    Approval, User, VisitorRequest, VisitorType, Warehouse, WarehouseTimeSlot, WarehouseWorkflowStep,
    VisitorRequestSortField, EOrderBy,
)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as handed over by the auth layer."""
    user_id: str
    role: str


@dataclass(frozen=True)
class LedgerEntry:
    approval_id: str
    step_no: int
    approver_id: str
    approver_name: Optional[str]
    status: str
    reason: Optional[str]
    decided_at: Optional[dt.datetime]


@dataclass(frozen=True)
class WorkflowStepView:
    step: WarehouseWorkflowStep
    visitor_type_name: str
    approver_name: Optional[str]


@dataclass(frozen=True)
class RequestFilters:
    warehouse_id: Optional[str] = None
    status: Optional[str] = None
    visit_status: Optional[str] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None


class WorkflowStore(Protocol):
    def transaction(self) -> AsyncContextManager[None]:
        """Unit of work; commits on clean exit, rolls back on error and maps
        store integrity violations to ``ConflictError``."""

    # reference data
    async def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]: ...
    async def get_visitor_type(self, visitor_type_id: str) -> Optional[VisitorType]: ...
    async def get_time_slot(self, slot_id: str) -> Optional[WarehouseTimeSlot]: ...
    async def get_user(self, user_id: str) -> Optional[User]: ...

    # workflow template
    async def list_steps(self, warehouse_id: str, visitor_type_id: str) -> List[WarehouseWorkflowStep]: ...
    async def list_steps_for_warehouse(self, warehouse_id: str) -> List[WorkflowStepView]: ...
    async def get_step(self, step_id: str) -> Optional[WarehouseWorkflowStep]: ...
    async def find_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, *, exclude_id: Optional[str] = None
    ) -> Optional[WarehouseWorkflowStep]: ...
    async def add_step(self, step: WarehouseWorkflowStep) -> None: ...
    async def save_step(self, step: WarehouseWorkflowStep) -> None: ...
    async def delete_step(self, step: WarehouseWorkflowStep) -> None: ...

    # visitor requests
    async def add_request(self, request: VisitorRequest) -> None: ...
    async def save_request(self, request: VisitorRequest) -> None: ...
    async def get_request(self, request_id: str, *, for_update: bool = False) -> Optional[VisitorRequest]: ...
    async def get_request_by_tracking_code(self, code: str) -> Optional[VisitorRequest]: ...
    async def tracking_code_exists(self, code: str) -> bool: ...
    async def find_approved_booking(
        self, warehouse_id: str, date: dt.date, slot_id: str, *, exclude_request_id: Optional[str] = None
    ) -> Optional[VisitorRequest]: ...
    async def find_duplicate_request(
        self, name: str, date: dt.date, warehouse_id: str, slot_id: str
    ) -> Optional[VisitorRequest]: ...
    async def list_unledgered_pending_requests(
        self, warehouse_id: str, visitor_type_id: str
    ) -> List[VisitorRequest]: ...
    async def list_requests(
        self, filters: RequestFilters, *, page: int, page_size: int,
        sort_by: VisitorRequestSortField = VisitorRequestSortField.date, order_by: EOrderBy = EOrderBy.DESC,
    ) -> Tuple[List[VisitorRequest], int]: ...

    # approval ledger
    async def add_approvals(self, rows: Iterable[Approval]) -> None: ...
    async def save_approval(self, row: Approval) -> None: ...
    async def get_approval(self, approval_id: str, *, for_update: bool = False) -> Optional[Approval]: ...
    async def list_approvals(self, request_id: str) -> List[Approval]: ...
    async def list_ledger(self, request_id: str) -> List[LedgerEntry]: ...
    async def list_approvals_for_approver(
        self, approver_id: str, statuses: Sequence[str]
    ) -> List[Tuple[Approval, VisitorRequest]]: ...
    async def delete_approvals_for_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, approver_id: str
    ) -> List[str]:
        """Delete matching rows of pending requests; returns the affected request ids."""


class Notifier(Protocol):
    async def notify_approved(
        self,
        recipient: str,
        tracking_code: str,
        warehouse: Warehouse,
        slot: WarehouseTimeSlot,
        date: dt.date,
        *,
        visitor_name: Optional[str] = None,
    ) -> None: ...

    async def notify_rejected(
        self,
        recipient: str,
        tracking_code: str,
        reason: Optional[str],
        *,
        visitor_name: Optional[str] = None,
    ) -> None: ...
