import logging
from typing import List

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.repo.models import VisitorRequest, Warehouse, WarehouseTimeSlot
from gatepass.core.db.session import commit_or_conflict
from gatepass.core.errors import ConflictError, NotFoundError
from gatepass.domain.workflow.engine import new_id
from gatepass.domain.v1.warehouse.schema import (
    TimeSlotIn, TimeSlotOut, WarehouseDetailOut, WarehouseIn, WarehouseOut,
)
from gatepass.utils.helper.helper import clean_text, validate_uuid

log = logging.getLogger(__name__)


class WarehouseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, warehouse_id: str) -> Warehouse:
        wh = await self.db.get(Warehouse, validate_uuid(warehouse_id, "warehouse_id"))
        if wh is None:
            raise NotFoundError("Warehouse not found")
        return wh

    async def _ensure_name_free(self, name: str, exclude_id: str | None = None) -> None:
        q = select(Warehouse.id).where(Warehouse.name == name)
        if exclude_id:
            q = q.where(Warehouse.id != exclude_id)
        if await self.db.scalar(q.limit(1)):
            raise ConflictError(f"Warehouse '{name}' already exists")

    # ---------- warehouses ----------
    async def list_warehouses(self) -> List[WarehouseOut]:
        rows = (await self.db.execute(select(Warehouse).order_by(Warehouse.name.asc()))).scalars().all()
        return [WarehouseOut.model_validate(r) for r in rows]

    async def get_warehouse(self, warehouse_id: str) -> WarehouseDetailOut:
        wh = await self._get(warehouse_id)
        slots = await self.list_time_slots(wh.id)
        return WarehouseDetailOut(**WarehouseOut.model_validate(wh).model_dump(), time_slots=slots)

    async def create_warehouse(self, body: WarehouseIn) -> WarehouseOut:
        name = clean_text(body.name)
        await self._ensure_name_free(name)
        wh = Warehouse(id=new_id(), name=name, location=clean_text(body.location))
        self.db.add(wh)
        await commit_or_conflict(self.db, f"Warehouse '{name}' already exists")
        log.info("warehouse %s created: %s", wh.id, wh.name)
        return WarehouseOut.model_validate(wh)

    async def update_warehouse(self, warehouse_id: str, body: WarehouseIn) -> WarehouseOut:
        wh = await self._get(warehouse_id)
        name = clean_text(body.name)
        await self._ensure_name_free(name, exclude_id=wh.id)
        wh.name = name
        wh.location = clean_text(body.location)
        await commit_or_conflict(self.db, f"Warehouse '{name}' already exists")
        return WarehouseOut.model_validate(wh)

    async def delete_warehouse(self, warehouse_id: str) -> None:
        wh = await self._get(warehouse_id)
        in_use = await self.db.scalar(select(exists().where(VisitorRequest.warehouse_id == wh.id)))
        if in_use:
            raise ConflictError("Warehouse has visitor requests and cannot be deleted")
        await self.db.delete(wh)
        await commit_or_conflict(self.db, "Warehouse is still referenced and cannot be deleted")
        log.info("warehouse %s deleted", wh.id)

    # ---------- time slots ----------
    async def list_time_slots(self, warehouse_id: str) -> List[TimeSlotOut]:
        q = (
            select(WarehouseTimeSlot)
            .where(WarehouseTimeSlot.warehouse_id == warehouse_id)
            .order_by(WarehouseTimeSlot.from_time.asc())
        )
        return [TimeSlotOut.model_validate(s) for s in (await self.db.execute(q)).scalars().all()]

    async def list_time_slots_for(self, warehouse_id: str) -> List[TimeSlotOut]:
        wh = await self._get(warehouse_id)
        return await self.list_time_slots(wh.id)

    async def create_time_slot(self, warehouse_id: str, body: TimeSlotIn) -> TimeSlotOut:
        wh = await self._get(warehouse_id)
        slot = WarehouseTimeSlot(
            id=new_id(),
            warehouse_id=wh.id,
            name=clean_text(body.name),
            from_time=body.from_time,
            to_time=body.to_time,
        )
        self.db.add(slot)
        await commit_or_conflict(self.db)
        return TimeSlotOut.model_validate(slot)

    async def _get_slot(self, warehouse_id: str, slot_id: str) -> WarehouseTimeSlot:
        slot = await self.db.get(WarehouseTimeSlot, validate_uuid(slot_id, "slot_id"))
        if slot is None or slot.warehouse_id != validate_uuid(warehouse_id, "warehouse_id"):
            raise NotFoundError("Time slot not found")
        return slot

    async def update_time_slot(self, warehouse_id: str, slot_id: str, body: TimeSlotIn) -> TimeSlotOut:
        slot = await self._get_slot(warehouse_id, slot_id)
        slot.name = clean_text(body.name)
        slot.from_time = body.from_time
        slot.to_time = body.to_time
        await commit_or_conflict(self.db)
        return TimeSlotOut.model_validate(slot)

    async def delete_time_slot(self, warehouse_id: str, slot_id: str) -> None:
        slot = await self._get_slot(warehouse_id, slot_id)
        in_use = await self.db.scalar(
            select(exists().where(VisitorRequest.warehouse_time_slot_id == slot.id))
        )
        if in_use:
            raise ConflictError("Time slot has visitor requests and cannot be deleted")
        await self.db.delete(slot)
        await commit_or_conflict(self.db)
