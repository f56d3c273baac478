# gatepass/core/db/repo/workflow/workflow_repo.py
from __future__ import annotations

import datetime as dt
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, delete, exists, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.repo.models import (
    Approval, User, VisitorRequest, VisitorType, Warehouse, WarehouseTimeSlot, WarehouseWorkflowStep,
    ERequestStatus, EOrderBy, VisitorRequestSortField,
)
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.ports import LedgerEntry, RequestFilters, WorkflowStepView
from gatepass.utils.helper.paginate import paginate

log = logging.getLogger(__name__)


class SqlWorkflowStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            log.info("integrity violation mapped to conflict: %s", exc.orig)
            raise ConflictError("The change conflicts with existing data, please retry") from exc
        except Exception:
            await self.db.rollback()
            raise

    # ---------- reference data ----------
    async def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        return await self.db.get(Warehouse, warehouse_id)

    async def get_visitor_type(self, visitor_type_id: str) -> Optional[VisitorType]:
        return await self.db.get(VisitorType, visitor_type_id)

    async def get_time_slot(self, slot_id: str) -> Optional[WarehouseTimeSlot]:
        return await self.db.get(WarehouseTimeSlot, slot_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    # ---------- workflow template ----------
    async def list_steps(self, warehouse_id: str, visitor_type_id: str) -> List[WarehouseWorkflowStep]:
        q = (
            select(WarehouseWorkflowStep)
            .where(
                WarehouseWorkflowStep.warehouse_id == warehouse_id,
                WarehouseWorkflowStep.visitor_type_id == visitor_type_id,
            )
            .order_by(WarehouseWorkflowStep.step_no.asc())
        )
        return list((await self.db.execute(q)).scalars().all())

    async def list_steps_for_warehouse(self, warehouse_id: str) -> List[WorkflowStepView]:
        q = (
            select(WarehouseWorkflowStep, VisitorType.name, User.name)
            .join(VisitorType, VisitorType.id == WarehouseWorkflowStep.visitor_type_id)
            .join(User, User.id == WarehouseWorkflowStep.approver_id)
            .where(WarehouseWorkflowStep.warehouse_id == warehouse_id)
            .order_by(VisitorType.name.asc(), WarehouseWorkflowStep.step_no.asc())
        )
        rows = (await self.db.execute(q)).all()
        return [WorkflowStepView(step=s, visitor_type_name=vt, approver_name=an) for s, vt, an in rows]

    async def get_step(self, step_id: str) -> Optional[WarehouseWorkflowStep]:
        return await self.db.get(WarehouseWorkflowStep, step_id)

    async def find_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, *, exclude_id: Optional[str] = None
    ) -> Optional[WarehouseWorkflowStep]:
        q = select(WarehouseWorkflowStep).where(
            WarehouseWorkflowStep.warehouse_id == warehouse_id,
            WarehouseWorkflowStep.visitor_type_id == visitor_type_id,
            WarehouseWorkflowStep.step_no == step_no,
        )
        if exclude_id is not None:
            q = q.where(WarehouseWorkflowStep.id != exclude_id)
        return (await self.db.execute(q.limit(1))).scalar_one_or_none()

    async def add_step(self, step: WarehouseWorkflowStep) -> None:
        self.db.add(step)
        await self.db.flush()

    async def save_step(self, step: WarehouseWorkflowStep) -> None:
        await self.db.flush()

    async def delete_step(self, step: WarehouseWorkflowStep) -> None:
        await self.db.delete(step)
        await self.db.flush()

    # ---------- visitor requests ----------
    async def add_request(self, request: VisitorRequest) -> None:
        self.db.add(request)
        await self.db.flush()

    async def save_request(self, request: VisitorRequest) -> None:
        await self.db.flush()

    async def get_request(self, request_id: str, *, for_update: bool = False) -> Optional[VisitorRequest]:
        q = select(VisitorRequest).where(VisitorRequest.id == request_id)
        if for_update:
            q = q.with_for_update()
        return (await self.db.execute(q)).scalar_one_or_none()

    async def get_request_by_tracking_code(self, code: str) -> Optional[VisitorRequest]:
        q = select(VisitorRequest).where(VisitorRequest.tracking_code == code)
        return (await self.db.execute(q)).scalar_one_or_none()

    async def tracking_code_exists(self, code: str) -> bool:
        return bool(await self.db.scalar(select(exists().where(VisitorRequest.tracking_code == code))))

    async def find_approved_booking(
        self, warehouse_id: str, date: dt.date, slot_id: str, *, exclude_request_id: Optional[str] = None
    ) -> Optional[VisitorRequest]:
        q = select(VisitorRequest).where(
            VisitorRequest.warehouse_id == warehouse_id,
            VisitorRequest.date == date,
            VisitorRequest.warehouse_time_slot_id == slot_id,
            VisitorRequest.status == ERequestStatus.APPROVED.value,
        )
        if exclude_request_id is not None:
            q = q.where(VisitorRequest.id != exclude_request_id)
        return (await self.db.execute(q.limit(1))).scalar_one_or_none()

    async def find_duplicate_request(
        self, name: str, date: dt.date, warehouse_id: str, slot_id: str
    ) -> Optional[VisitorRequest]:
        q = select(VisitorRequest).where(
            VisitorRequest.name == name,
            VisitorRequest.date == date,
            VisitorRequest.warehouse_id == warehouse_id,
            VisitorRequest.warehouse_time_slot_id == slot_id,
        )
        return (await self.db.execute(q.limit(1))).scalar_one_or_none()

    async def list_unledgered_pending_requests(
        self, warehouse_id: str, visitor_type_id: str
    ) -> List[VisitorRequest]:
        has_rows = exists().where(Approval.visitor_request_id == VisitorRequest.id)
        q = (
            select(VisitorRequest)
            .where(
                VisitorRequest.warehouse_id == warehouse_id,
                VisitorRequest.visitor_type_id == visitor_type_id,
                VisitorRequest.status == ERequestStatus.PENDING.value,
                ~has_rows,
            )
            .order_by(VisitorRequest.created_at.asc())
            .with_for_update()
        )
        return list((await self.db.execute(q)).scalars().all())

    async def list_requests(
        self, filters: RequestFilters, *, page: int, page_size: int,
        sort_by: VisitorRequestSortField = VisitorRequestSortField.date, order_by: EOrderBy = EOrderBy.DESC,
    ) -> Tuple[List[VisitorRequest], int]:
        where_clauses = []
        if filters.warehouse_id:
            where_clauses.append(VisitorRequest.warehouse_id == filters.warehouse_id)
        if filters.status:
            where_clauses.append(VisitorRequest.status == filters.status)
        if filters.visit_status:
            where_clauses.append(VisitorRequest.visit_status == filters.visit_status)
        if filters.date_from:
            where_clauses.append(VisitorRequest.date >= filters.date_from)
        if filters.date_to:
            where_clauses.append(VisitorRequest.date <= filters.date_to)

        q = select(VisitorRequest)
        if where_clauses:
            q = q.where(and_(*where_clauses))
        ALLOWED_SORT = {
            VisitorRequestSortField.date:       VisitorRequest.date,
            VisitorRequestSortField.name:       VisitorRequest.name,
            VisitorRequestSortField.status:     VisitorRequest.status,
            VisitorRequestSortField.created_at: VisitorRequest.created_at,
        }
        col = ALLOWED_SORT[sort_by]
        primary = col.asc() if order_by == EOrderBy.ASC else col.desc()
        q = q.order_by(primary, VisitorRequest.created_at.desc(), VisitorRequest.id.asc())

        rows, total = await paginate(self.db, q, page, page_size)
        return rows, total

    # ---------- approval ledger ----------
    async def add_approvals(self, rows: Iterable[Approval]) -> None:
        self.db.add_all(list(rows))
        await self.db.flush()

    async def save_approval(self, row: Approval) -> None:
        await self.db.flush()

    async def get_approval(self, approval_id: str, *, for_update: bool = False) -> Optional[Approval]:
        q = select(Approval).where(Approval.id == approval_id)
        if for_update:
            q = q.with_for_update()
        return (await self.db.execute(q)).scalar_one_or_none()

    async def list_approvals(self, request_id: str) -> List[Approval]:
        q = (
            select(Approval)
            .where(Approval.visitor_request_id == request_id)
            .order_by(Approval.step_no.asc())
        )
        return list((await self.db.execute(q)).scalars().all())

    async def list_ledger(self, request_id: str) -> List[LedgerEntry]:
        q = (
            select(Approval, User.name)
            .outerjoin(User, User.id == Approval.approver_id)
            .where(Approval.visitor_request_id == request_id)
            .order_by(Approval.step_no.asc())
        )
        return [
            LedgerEntry(
                approval_id=a.id,
                step_no=a.step_no,
                approver_id=a.approver_id,
                approver_name=name,
                status=a.status,
                reason=a.reason,
                decided_at=a.decided_at,
            )
            for a, name in (await self.db.execute(q)).all()
        ]

    async def list_approvals_for_approver(
        self, approver_id: str, statuses: Sequence[str]
    ) -> List[Tuple[Approval, VisitorRequest]]:
        q = (
            select(Approval, VisitorRequest)
            .join(VisitorRequest, VisitorRequest.id == Approval.visitor_request_id)
            .where(Approval.approver_id == approver_id, Approval.status.in_(list(statuses)))
            .order_by(VisitorRequest.date.asc(), Approval.step_no.asc())
        )
        return [(a, r) for a, r in (await self.db.execute(q)).all()]

    async def delete_approvals_for_step(
        self, warehouse_id: str, visitor_type_id: str, step_no: int, approver_id: str
    ) -> List[str]:
        in_flight = (
            select(VisitorRequest.id)
            .where(
                VisitorRequest.warehouse_id == warehouse_id,
                VisitorRequest.visitor_type_id == visitor_type_id,
                VisitorRequest.status == ERequestStatus.PENDING.value,
            )
        )
        res = await self.db.execute(
            delete(Approval)
            .where(
                Approval.visitor_request_id.in_(in_flight),
                Approval.step_no == step_no,
                Approval.approver_id == approver_id,
            )
            .returning(Approval.visitor_request_id)
            .execution_options(synchronize_session="fetch")
        )
        affected = sorted({r[0] for r in res.all()})
        await self.db.flush()
        return affected

