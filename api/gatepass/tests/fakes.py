# gatepass/tests/fakes.py
"""
In-memory stand-ins for the workflow store and the notifier.

``InMemoryWorkflowStore`` keeps transient ORM instances in dicts. A
transaction snapshots every column value and restores it when the block
raises, and the unique constraints of the real schema are checked on every
write so races that slip past the application checks still surface as
``ConflictError``.
"""
from __future__ import annotations

import datetime as dt
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, Tuple

from gatepass.core.db.repo.models import (
    Approval, EApprovalStatus, EOrderBy, ERequestStatus, User, VisitorRequest,
    VisitorRequestSortField, VisitorType, Warehouse, WarehouseTimeSlot, WarehouseWorkflowStep,
)
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.ports import LedgerEntry, RequestFilters, WorkflowStepView
from gatepass.utils.helper.paginate import page_window

TABLES = ("warehouses", "visitor_types", "time_slots", "users", "steps", "requests", "approvals")


class IntegrityViolation(Exception):
    """What the database would raise for a unique index violation."""


def _row_state(obj) -> Dict[str, Any]:
    return {c.key: getattr(obj, c.key) for c in type(obj).__table__.columns}


class InMemoryWorkflowStore:
    def __init__(self):
        self.warehouses: Dict[str, Warehouse] = {}
        self.visitor_types: Dict[str, VisitorType] = {}
        self.time_slots: Dict[str, WarehouseTimeSlot] = {}
        self.users: Dict[str, User] = {}
        self.steps: Dict[str, WarehouseWorkflowStep] = {}
        self.requests: Dict[str, VisitorRequest] = {}
        self.approvals: Dict[str, Approval] = {}
        self.commits = 0
        self.rollbacks = 0
        self.codes_checked: List[str] = []

    # ---------- unit of work ----------
    def _snapshot(self):
        return {
            name: {key: (obj, _row_state(obj)) for key, obj in getattr(self, name).items()}
            for name in TABLES
        }

    def _restore(self, snapshot) -> None:
        for name in TABLES:
            table = {}
            for key, (obj, state) in snapshot[name].items():
                for attr, value in state.items():
                    setattr(obj, attr, value)
                table[key] = obj
            setattr(self, name, table)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        snapshot = self._snapshot()
        try:
            yield
            self._check_constraints()
        except IntegrityViolation as exc:
            self._restore(snapshot)
            self.rollbacks += 1
            raise ConflictError("The change conflicts with existing data, please retry") from exc
        except Exception:
            self._restore(snapshot)
            self.rollbacks += 1
            raise
        self.commits += 1

    def _check_constraints(self) -> None:
        def _unique(rows: Iterable[Tuple], name: str) -> None:
            seen = set()
            for key in rows:
                if key in seen:
                    raise IntegrityViolation(name)
                seen.add(key)

        _unique(((s.warehouse_id, s.visitor_type_id, s.step_no) for s in self.steps.values()),
                "uq_workflow_step_slot")
        _unique(((a.visitor_request_id, a.step_no, a.approver_id) for a in self.approvals.values()),
                "uq_approval_request_step_approver")
        _unique(((r.tracking_code,) for r in self.requests.values()), "visitor_requests_tracking_code_key")
        _unique(
            (
                (r.warehouse_id, r.date, r.warehouse_time_slot_id)
                for r in self.requests.values()
                if r.status == ERequestStatus.APPROVED.value
            ),
            "uq_visitor_requests_approved_slot",
        )

    # ---------- seeding helpers (tests only) ----------
    def seed_warehouse(self, name: str = "Central Warehouse") -> Warehouse:
        wh = Warehouse(id=str(uuid.uuid4()), name=name, location="Pune")
        self.warehouses[wh.id] = wh
        return wh

    def seed_time_slot(self, warehouse: Warehouse, name: str = "Morning",
                       from_time: dt.time = dt.time(9, 0), to_time: dt.time = dt.time(11, 0)) -> WarehouseTimeSlot:
        slot = WarehouseTimeSlot(
            id=str(uuid.uuid4()), warehouse_id=warehouse.id, name=name, from_time=from_time, to_time=to_time
        )
        self.time_slots[slot.id] = slot
        return slot

    def seed_visitor_type(self, name: str) -> VisitorType:
        vt = VisitorType(id=str(uuid.uuid4()), name=name, description=None)
        self.visitor_types[vt.id] = vt
        return vt

    def seed_user(self, name: str, role: str = "Approver", *, is_active: bool = True) -> User:
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            password="x",
            role=role,
            is_active=is_active,
        )
        self.users[user.id] = user
        return user

    def seed_step(self, warehouse: Warehouse, visitor_type: VisitorType, step_no: int, approver: User) -> WarehouseWorkflowStep:
        step = WarehouseWorkflowStep(
            id=str(uuid.uuid4()),
            warehouse_id=warehouse.id,
            visitor_type_id=visitor_type.id,
            step_no=step_no,
            approver_id=approver.id,
        )
        self.steps[step.id] = step
        return step

    # ---------- reference data ----------
    async def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        return self.warehouses.get(warehouse_id)

    async def get_visitor_type(self, visitor_type_id: str) -> Optional[VisitorType]:
        return self.visitor_types.get(visitor_type_id)

    async def get_time_slot(self, slot_id: str) -> Optional[WarehouseTimeSlot]:
        return self.time_slots.get(slot_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    # ---------- workflow template ----------
    async def list_steps(self, warehouse_id: str, visitor_type_id: str) -> List[WarehouseWorkflowStep]:
        rows = [
            s for s in self.steps.values()
            if s.warehouse_id == warehouse_id and s.visitor_type_id == visitor_type_id
        ]
        return sorted(rows, key=lambda s: s.step_no)

    async def list_steps_for_warehouse(self, warehouse_id: str) -> List[WorkflowStepView]:
        views = [
            WorkflowStepView(
                step=s,
                visitor_type_name=self.visitor_types[s.visitor_type_id].name,
                approver_name=self.users[s.approver_id].name if s.approver_id in self.users else None,
            )
            for s in self.steps.values()
            if s.warehouse_id == warehouse_id
        ]
        return sorted(views, key=lambda v: (v.visitor_type_name, v.step.step_no))

    async def get_step(self, step_id: str) -> Optional[WarehouseWorkflowStep]:
        return self.steps.get(step_id)

    async def find_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, *, exclude_id: Optional[str] = None
    ) -> Optional[WarehouseWorkflowStep]:
        for s in self.steps.values():
            if (s.warehouse_id, s.visitor_type_id, s.step_no) == (warehouse_id, visitor_type_id, step_no) \
                    and s.id != exclude_id:
                return s
        return None

    async def add_step(self, step: WarehouseWorkflowStep) -> None:
        self.steps[step.id] = step
        self._check_constraints()

    async def save_step(self, step: WarehouseWorkflowStep) -> None:
        self._check_constraints()

    async def delete_step(self, step: WarehouseWorkflowStep) -> None:
        self.steps.pop(step.id, None)

    # ---------- visitor requests ----------
    async def add_request(self, request: VisitorRequest) -> None:
        self.requests[request.id] = request
        self._check_constraints()

    async def save_request(self, request: VisitorRequest) -> None:
        self._check_constraints()

    async def get_request(self, request_id: str, *, for_update: bool = False) -> Optional[VisitorRequest]:
        return self.requests.get(request_id)

    async def get_request_by_tracking_code(self, code: str) -> Optional[VisitorRequest]:
        return next((r for r in self.requests.values() if r.tracking_code == code), None)

    async def tracking_code_exists(self, code: str) -> bool:
        self.codes_checked.append(code)
        return any(r.tracking_code == code for r in self.requests.values())

    async def find_approved_booking(
        self, warehouse_id: str, date: dt.date, slot_id: str, *, exclude_request_id: Optional[str] = None
    ) -> Optional[VisitorRequest]:
        for r in self.requests.values():
            if (r.warehouse_id, r.date, r.warehouse_time_slot_id) == (warehouse_id, date, slot_id) \
                    and r.status == ERequestStatus.APPROVED.value and r.id != exclude_request_id:
                return r
        return None

    async def find_duplicate_request(
        self, name: str, date: dt.date, warehouse_id: str, slot_id: str
    ) -> Optional[VisitorRequest]:
        for r in self.requests.values():
            if (r.name, r.date, r.warehouse_id, r.warehouse_time_slot_id) == (name, date, warehouse_id, slot_id):
                return r
        return None

    async def list_unledgered_pending_requests(self, warehouse_id: str, visitor_type_id: str) -> List[VisitorRequest]:
        with_rows = {a.visitor_request_id for a in self.approvals.values()}
        return [
            r for r in self.requests.values()
            if r.warehouse_id == warehouse_id
            and r.visitor_type_id == visitor_type_id
            and r.status == ERequestStatus.PENDING.value
            and r.id not in with_rows
        ]

    async def list_requests(
        self, filters: RequestFilters, *, page: int, page_size: int,
        sort_by: VisitorRequestSortField = VisitorRequestSortField.date, order_by: EOrderBy = EOrderBy.DESC,
    ) -> Tuple[List[VisitorRequest], int]:
        rows = [
            r for r in self.requests.values()
            if (not filters.warehouse_id or r.warehouse_id == filters.warehouse_id)
            and (not filters.status or r.status == filters.status)
            and (not filters.visit_status or r.visit_status == filters.visit_status)
            and (not filters.date_from or r.date >= filters.date_from)
            and (not filters.date_to or r.date <= filters.date_to)
        ]
        rows.sort(key=lambda r: getattr(r, sort_by.value) or "", reverse=order_by == EOrderBy.DESC)
        page_size, offset = page_window(page, page_size)
        return rows[offset:offset + page_size], len(rows)

    # ---------- approval ledger ----------
    async def add_approvals(self, rows: Iterable[Approval]) -> None:
        for row in rows:
            self.approvals[row.id] = row
        self._check_constraints()

    async def save_approval(self, row: Approval) -> None:
        self._check_constraints()

    async def get_approval(self, approval_id: str, *, for_update: bool = False) -> Optional[Approval]:
        return self.approvals.get(approval_id)

    async def list_approvals(self, request_id: str) -> List[Approval]:
        rows = [a for a in self.approvals.values() if a.visitor_request_id == request_id]
        return sorted(rows, key=lambda a: a.step_no)

    async def list_ledger(self, request_id: str) -> List[LedgerEntry]:
        return [
            LedgerEntry(
                approval_id=a.id,
                step_no=a.step_no,
                approver_id=a.approver_id,
                approver_name=self.users[a.approver_id].name if a.approver_id in self.users else None,
                status=a.status,
                reason=a.reason,
                decided_at=a.decided_at,
            )
            for a in await self.list_approvals(request_id)
        ]

    async def list_approvals_for_approver(
        self, approver_id: str, statuses: Sequence[str]
    ) -> List[Tuple[Approval, VisitorRequest]]:
        pairs = [
            (a, self.requests[a.visitor_request_id])
            for a in self.approvals.values()
            if a.approver_id == approver_id and a.status in statuses
        ]
        return sorted(pairs, key=lambda p: (p[1].date, p[0].step_no))

    async def delete_approvals_for_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, approver_id: str
    ) -> List[str]:
        in_flight = {
            r.id for r in self.requests.values()
            if r.warehouse_id == warehouse_id
            and r.visitor_type_id == visitor_type_id
            and r.status == ERequestStatus.PENDING.value
        }
        doomed = [
            a for a in self.approvals.values()
            if a.visitor_request_id in in_flight and a.step_no == step_no and a.approver_id == approver_id
        ]
        for a in doomed:
            del self.approvals[a.id]
        return sorted({a.visitor_request_id for a in doomed})

    # ---------- assertions helpers ----------
    def ledger_statuses(self, request_id: str) -> List[Tuple[int, str]]:
        rows = [a for a in self.approvals.values() if a.visitor_request_id == request_id]
        return [(a.step_no, a.status) for a in sorted(rows, key=lambda a: a.step_no)]

    def pending_row_for(self, request_id: str, approver: User) -> Approval:
        return next(
            a for a in self.approvals.values()
            if a.visitor_request_id == request_id
            and a.approver_id == approver.id
            and a.status == EApprovalStatus.PENDING.value
        )


class RecordingNotifier:
    """Collects notifier calls; set ``fail`` to make every call raise."""

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.approved: List[Dict[str, Any]] = []
        self.rejected: List[Dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.approved) + len(self.rejected)

    async def notify_approved(self, recipient, tracking_code, warehouse, slot, date, *, visitor_name=None) -> None:
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.approved.append(
            {
                "recipient": recipient,
                "tracking_code": tracking_code,
                "warehouse": warehouse.name,
                "slot": slot.name,
                "date": date,
                "visitor_name": visitor_name,
            }
        )

    async def notify_rejected(self, recipient, tracking_code, reason, *, visitor_name=None) -> None:
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.rejected.append(
            {
                "recipient": recipient,
                "tracking_code": tracking_code,
                "reason": reason,
                "visitor_name": visitor_name,
            }
        )
