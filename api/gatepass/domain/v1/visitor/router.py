from fastapi import APIRouter, Depends, Query
from typing import Optional
import datetime as dt

from gatepass.core.security.auth import get_current_user
from gatepass.core.db.repo.models import (
    User, ERequestStatus, EVisitStatus, EOrderBy, VisitorRequestSortField,
)
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.v1.visitor.schema import VisitorRequestDetailOut, VisitorRequestListOut, VisitorRequestOut
from gatepass.domain.v1.visitor.service import VisitorRequestService
from gatepass.utils.deps import PageSizeQuery, get_engine, get_store
from gatepass.utils.helper.helper import require_role

router = APIRouter()

STAFF = ["Admin", "Receptionist", "Approver"]
FRONT_DESK = ["Admin", "Receptionist"]


def get_service(store=Depends(get_store), engine: WorkflowEngine = Depends(get_engine)) -> VisitorRequestService:
    return VisitorRequestService(store, engine)


@router.get("", response_model=VisitorRequestListOut)
async def list_visitor_requests(
    page: int = Query(1, ge=1),
    page_size: int = Depends(PageSizeQuery()),
    warehouse_id: Optional[str] = Query(None),
    status: Optional[ERequestStatus] = Query(None),
    visit_status: Optional[EVisitStatus] = Query(None),
    date_from: Optional[dt.date] = Query(None),
    date_to: Optional[dt.date] = Query(None),
    sort_by: VisitorRequestSortField = Query(VisitorRequestSortField.date),
    order_by: EOrderBy = Query(EOrderBy.DESC),
    svc: VisitorRequestService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, STAFF)
    return await svc.list_requests(
        page=page,
        page_size=page_size,
        warehouse_id=warehouse_id,
        status=status,
        visit_status=visit_status,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        order_by=order_by,
    )


@router.get("/{request_id}", response_model=VisitorRequestDetailOut)
async def get_visitor_request(
    request_id: str,
    svc: VisitorRequestService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, STAFF)
    return await svc.get_request(request_id)


@router.post("/{request_id}/arrival", response_model=VisitorRequestOut)
async def mark_arrival(
    request_id: str,
    svc: VisitorRequestService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, FRONT_DESK)
    return await svc.mark_arrival(request_id)


@router.post("/{request_id}/checkout", response_model=VisitorRequestOut)
async def mark_checkout(
    request_id: str,
    svc: VisitorRequestService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, FRONT_DESK)
    return await svc.mark_checkout(request_id)


@router.post("/{request_id}/no-show", response_model=VisitorRequestOut)
async def mark_no_show(
    request_id: str,
    svc: VisitorRequestService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, FRONT_DESK)
    return await svc.mark_no_show(request_id)
