from fastapi import APIRouter, Depends, Response
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.session import get_db
from gatepass.core.security.auth import get_current_user
from gatepass.core.db.repo.models import User
from gatepass.domain.v1.warehouse.schema import (
    TimeSlotIn, TimeSlotOut, WarehouseDetailOut, WarehouseIn, WarehouseOut,
)
from gatepass.domain.v1.warehouse.service import WarehouseService
from gatepass.utils.helper.helper import require_role

router = APIRouter()

STAFF = ["Admin", "Receptionist", "Approver"]


def get_service(db: AsyncSession = Depends(get_db)) -> WarehouseService:
    return WarehouseService(db)


@router.get("", response_model=List[WarehouseOut])
async def list_warehouses(svc: WarehouseService = Depends(get_service), user: User = Depends(get_current_user)):
    require_role(user, STAFF)
    return await svc.list_warehouses()


@router.get("/{warehouse_id}", response_model=WarehouseDetailOut)
async def get_warehouse(
    warehouse_id: str,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, STAFF)
    return await svc.get_warehouse(warehouse_id)


@router.post("", response_model=WarehouseOut, status_code=201)
async def create_warehouse(
    body: WarehouseIn,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.create_warehouse(body)


@router.put("/{warehouse_id}", response_model=WarehouseOut)
async def update_warehouse(
    warehouse_id: str,
    body: WarehouseIn,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.update_warehouse(warehouse_id, body)


@router.delete("/{warehouse_id}", status_code=204)
async def delete_warehouse(
    warehouse_id: str,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    await svc.delete_warehouse(warehouse_id)
    return Response(status_code=204)


# ---- time slots ----
@router.get("/{warehouse_id}/time-slots", response_model=List[TimeSlotOut])
async def list_time_slots(
    warehouse_id: str,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, STAFF)
    return await svc.list_time_slots_for(warehouse_id)


@router.post("/{warehouse_id}/time-slots", response_model=TimeSlotOut, status_code=201)
async def create_time_slot(
    warehouse_id: str,
    body: TimeSlotIn,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.create_time_slot(warehouse_id, body)


@router.put("/{warehouse_id}/time-slots/{slot_id}", response_model=TimeSlotOut)
async def update_time_slot(
    warehouse_id: str,
    slot_id: str,
    body: TimeSlotIn,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.update_time_slot(warehouse_id, slot_id, body)


@router.delete("/{warehouse_id}/time-slots/{slot_id}", status_code=204)
async def delete_time_slot(
    warehouse_id: str,
    slot_id: str,
    svc: WarehouseService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    await svc.delete_time_slot(warehouse_id, slot_id)
    return Response(status_code=204)
