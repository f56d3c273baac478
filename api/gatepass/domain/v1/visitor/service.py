from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Callable, List, Optional

from gatepass.core.config.config import settings
from gatepass.core.db.repo.models import (
    EOrderBy, EPunctuality, ERequestStatus, EVisitStatus, VisitorRequest, VisitorRequestSortField,
)
from gatepass.core.errors import ConflictError, NotFoundError, ValidationError
from gatepass.domain.workflow.engine import WorkflowEngine, new_id
from gatepass.domain.workflow.ports import LedgerEntry, RequestFilters, WorkflowStore
from gatepass.domain.workflow.tracking import issue_tracking_code, normalize_tracking_code
from gatepass.domain.v1.visitor.schema import (
    LedgerRowOut, PaginationOut, SubmittedOut, TrackingOut, VisitorRequestCreate,
    VisitorRequestDetailOut, VisitorRequestListOut, VisitorRequestOut,
)
from gatepass.utils.helper.helper import TZ, clean_text, now_local, validate_email, validate_uuid
from gatepass.utils.helper.paginate import page_window

log = logging.getLogger(__name__)


def punctuality_for(arrived_at: dt.datetime, slot_start: dt.datetime, grace_minutes: int) -> EPunctuality:
    if arrived_at < slot_start:
        return EPunctuality.EARLY
    if arrived_at <= slot_start + dt.timedelta(minutes=grace_minutes):
        return EPunctuality.ON_TIME
    return EPunctuality.LATE


def _ledger_rows(entries: List[LedgerEntry]) -> List[LedgerRowOut]:
    return [
        LedgerRowOut(
            step_no=e.step_no,
            status=e.status,
            approver=e.approver_name,
            reason=e.reason,
            decided_at=e.decided_at,
        )
        for e in entries
    ]


class VisitorRequestService:
    def __init__(
        self,
        store: WorkflowStore,
        engine: WorkflowEngine,
        *,
        clock: Callable[[], dt.datetime] = now_local,
    ):
        self.store = store
        self.engine = engine
        self.clock = clock

    # ---------- submission ----------
    async def submit_request(self, body: VisitorRequestCreate) -> SubmittedOut:
        name = clean_text(body.name)
        if not name:
            raise ValidationError("name is required", details={"field": "name"})
        warehouse_id = validate_uuid(body.warehouse_id, "warehouse_id")
        visitor_type_id = validate_uuid(body.visitor_type_id, "visitor_type_id")
        slot_id = validate_uuid(body.warehouse_time_slot_id, "warehouse_time_slot_id")
        email = validate_email(body.email)

        today = self.clock().astimezone(TZ).date()
        if body.date < today:
            raise ValidationError("date must be today or later", details={"field": "date"})

        async with self.store.transaction():
            if await self.store.get_warehouse(warehouse_id) is None:
                raise NotFoundError("Warehouse not found")
            if await self.store.get_visitor_type(visitor_type_id) is None:
                raise NotFoundError("Visitor type not found")
            slot = await self.store.get_time_slot(slot_id)
            if slot is None:
                raise NotFoundError("Time slot not found")
            if slot.warehouse_id != warehouse_id:
                raise ValidationError(
                    "Time slot does not belong to the selected warehouse",
                    details={"field": "warehouse_time_slot_id"},
                )

            # guards run before a tracking code is drawn
            await self.engine.slot_guard.check_submission(
                name=name, date=body.date, warehouse_id=warehouse_id, slot_id=slot_id
            )
            code = await issue_tracking_code(self.store, settings.TRACKING_CODE_ATTEMPTS)

            request = VisitorRequest(
                id=new_id(),
                name=name,
                phone=clean_text(body.phone),
                email=email,
                visitor_type_id=visitor_type_id,
                warehouse_id=warehouse_id,
                warehouse_time_slot_id=slot_id,
                accompanying=list(body.accompanying or []),
                date=body.date,
                status=ERequestStatus.PENDING.value,
                tracking_code=code,
                visit_status=EVisitStatus.PENDING.value,
            )
            await self.store.add_request(request)
            rows = await self.engine.instantiate_ledger(request)

        log.info("visitor request %s submitted (code=%s, steps=%d)", request.id, code, len(rows))
        return SubmittedOut(
            id=request.id, tracking_code=code, status=request.status, approval_steps=len(rows)
        )

    # ---------- reads ----------
    async def track(self, tracking_code: str) -> TrackingOut:
        code = normalize_tracking_code(tracking_code)
        request = await self.store.get_request_by_tracking_code(code)
        if request is None:
            raise NotFoundError("No visitor request found for this tracking code")
        ledger = await self.store.list_ledger(request.id)
        return TrackingOut(
            tracking_code=request.tracking_code,
            name=request.name,
            date=request.date,
            status=request.status,
            visit_status=request.visit_status,
            approvals=_ledger_rows(ledger),
        )

    async def get_request(self, request_id: str) -> VisitorRequestDetailOut:
        request_id = validate_uuid(request_id, "id")
        request = await self.store.get_request(request_id)
        if request is None:
            raise NotFoundError("Visitor request not found")
        ledger = await self.store.list_ledger(request.id)
        base = VisitorRequestOut.model_validate(request)
        return VisitorRequestDetailOut(**base.model_dump(), approvals=_ledger_rows(ledger))

    async def list_requests(
        self,
        *,
        page: int,
        page_size: int,
        warehouse_id: Optional[str] = None,
        status: Optional[ERequestStatus] = None,
        visit_status: Optional[EVisitStatus] = None,
        date_from: Optional[dt.date] = None,
        date_to: Optional[dt.date] = None,
        sort_by: VisitorRequestSortField = VisitorRequestSortField.date,
        order_by: EOrderBy = EOrderBy.DESC,
    ) -> VisitorRequestListOut:
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        filters = RequestFilters(
            warehouse_id=validate_uuid(warehouse_id, "warehouse_id") if warehouse_id else None,
            status=status.value if status else None,
            visit_status=visit_status.value if visit_status else None,
            date_from=date_from,
            date_to=date_to,
        )
        page_size, _ = page_window(page, page_size)
        page = max(page, 1)

        rows, total = await self.store.list_requests(
            filters, page=page, page_size=page_size, sort_by=sort_by, order_by=order_by
        )
        return VisitorRequestListOut(
            data=[VisitorRequestOut.model_validate(r) for r in rows],
            pagination=PaginationOut(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=math.ceil(total / page_size) if page_size else 0,
            ),
        )

    # ---------- visit tracking ----------
    async def _load_for_visit(self, request_id: str) -> VisitorRequest:
        request = await self.store.get_request(validate_uuid(request_id, "id"), for_update=True)
        if request is None:
            raise NotFoundError("Visitor request not found")
        if request.status != ERequestStatus.APPROVED.value:
            raise ConflictError("Visit can only be tracked for an approved request")
        today = self.clock().astimezone(TZ).date()
        if request.date != today:
            raise ConflictError(
                "Visit can only be tracked on the visit date",
                details={"date": request.date.isoformat(), "today": today.isoformat()},
            )
        return request

    async def mark_arrival(self, request_id: str) -> VisitorRequestOut:
        async with self.store.transaction():
            request = await self._load_for_visit(request_id)
            if request.visit_status != EVisitStatus.PENDING.value:
                raise ConflictError(f"Visit already recorded as {request.visit_status}")

            slot = await self.store.get_time_slot(request.warehouse_time_slot_id)
            if slot is None:
                raise NotFoundError("Time slot not found")
            now = self.clock().astimezone(TZ)
            slot_start = dt.datetime.combine(request.date, slot.from_time, TZ)

            request.arrived_at = now
            request.visit_status = EVisitStatus.VISITED.value
            request.punctuality = punctuality_for(now, slot_start, settings.PUNCTUALITY_GRACE_MINUTES).value
            await self.store.save_request(request)

        log.info("request %s arrival at %s (%s)", request.id, now.isoformat(), request.punctuality)
        return VisitorRequestOut.model_validate(request)

    async def mark_checkout(self, request_id: str) -> VisitorRequestOut:
        async with self.store.transaction():
            request = await self._load_for_visit(request_id)
            if request.arrived_at is None:
                raise ConflictError("Visitor has not been marked as arrived")
            if request.checked_out_at is not None:
                raise ConflictError("Visitor already checked out")

            request.checked_out_at = self.clock().astimezone(TZ)
            await self.store.save_request(request)

        log.info("request %s checked out", request.id)
        return VisitorRequestOut.model_validate(request)

    async def mark_no_show(self, request_id: str) -> VisitorRequestOut:
        async with self.store.transaction():
            request = await self._load_for_visit(request_id)
            if request.visit_status != EVisitStatus.PENDING.value:
                raise ConflictError(f"Visit already recorded as {request.visit_status}")

            request.visit_status = EVisitStatus.NO_SHOW.value
            await self.store.save_request(request)

        log.info("request %s marked no-show", request.id)
        return VisitorRequestOut.model_validate(request)
