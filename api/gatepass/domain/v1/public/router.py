"""
Unauthenticated endpoints behind the visitor submission form and the
tracking page. The JWT middleware lets everything under ``/api/v1/public/``
through.
"""
from fastapi import APIRouter, Depends
from typing import List

from gatepass.domain.v1.visitor.schema import SubmittedOut, TrackingOut, VisitorRequestCreate
from gatepass.domain.v1.visitor.router import get_service as get_visitor_service
from gatepass.domain.v1.visitor.service import VisitorRequestService
from gatepass.domain.v1.visitor_type.router import get_service as get_visitor_type_service
from gatepass.domain.v1.visitor_type.schema import VisitorTypeOut
from gatepass.domain.v1.visitor_type.service import VisitorTypeService
from gatepass.domain.v1.warehouse.router import get_service as get_warehouse_service
from gatepass.domain.v1.warehouse.schema import TimeSlotOut, WarehouseOut
from gatepass.domain.v1.warehouse.service import WarehouseService

router = APIRouter()


@router.post("/visitor-requests", response_model=SubmittedOut, status_code=201)
async def submit_visitor_request(
    body: VisitorRequestCreate,
    svc: VisitorRequestService = Depends(get_visitor_service),
):
    return await svc.submit_request(body)


@router.get("/track/{tracking_code}", response_model=TrackingOut)
async def track_visitor_request(
    tracking_code: str,
    svc: VisitorRequestService = Depends(get_visitor_service),
):
    return await svc.track(tracking_code)


@router.get("/warehouses", response_model=List[WarehouseOut])
async def public_warehouses(svc: WarehouseService = Depends(get_warehouse_service)):
    return await svc.list_warehouses()


@router.get("/warehouses/{warehouse_id}/time-slots", response_model=List[TimeSlotOut])
async def public_time_slots(warehouse_id: str, svc: WarehouseService = Depends(get_warehouse_service)):
    return await svc.list_time_slots_for(warehouse_id)


@router.get("/visitor-types", response_model=List[VisitorTypeOut])
async def public_visitor_types(svc: VisitorTypeService = Depends(get_visitor_type_service)):
    return await svc.list_types()
