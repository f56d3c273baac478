from typing import List

from sqlalchemy import select, exists, or_
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.repo.models import VisitorRequest, VisitorType, WarehouseWorkflowStep
from gatepass.core.db.session import commit_or_conflict
from gatepass.core.errors import ConflictError, NotFoundError
from gatepass.domain.workflow.engine import new_id
from gatepass.domain.v1.visitor_type.schema import VisitorTypeIn, VisitorTypeOut
from gatepass.utils.helper.helper import clean_text, validate_uuid


class VisitorTypeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, visitor_type_id: str) -> VisitorType:
        vt = await self.db.get(VisitorType, validate_uuid(visitor_type_id, "visitor_type_id"))
        if vt is None:
            raise NotFoundError("Visitor type not found")
        return vt

    async def _ensure_name_free(self, name: str, exclude_id: str | None = None) -> None:
        q = select(VisitorType.id).where(VisitorType.name == name)
        if exclude_id:
            q = q.where(VisitorType.id != exclude_id)
        if await self.db.scalar(q.limit(1)):
            raise ConflictError(f"Visitor type '{name}' already exists")

    async def list_types(self) -> List[VisitorTypeOut]:
        rows = (await self.db.execute(select(VisitorType).order_by(VisitorType.name.asc()))).scalars().all()
        return [VisitorTypeOut.model_validate(r) for r in rows]

    async def get_type(self, visitor_type_id: str) -> VisitorTypeOut:
        return VisitorTypeOut.model_validate(await self._get(visitor_type_id))

    async def create_type(self, body: VisitorTypeIn) -> VisitorTypeOut:
        name = clean_text(body.name)
        await self._ensure_name_free(name)
        vt = VisitorType(id=new_id(), name=name, description=clean_text(body.description))
        self.db.add(vt)
        await commit_or_conflict(self.db, f"Visitor type '{name}' already exists")
        return VisitorTypeOut.model_validate(vt)

    async def update_type(self, visitor_type_id: str, body: VisitorTypeIn) -> VisitorTypeOut:
        vt = await self._get(visitor_type_id)
        name = clean_text(body.name)
        await self._ensure_name_free(name, exclude_id=vt.id)
        vt.name = name
        vt.description = clean_text(body.description)
        await commit_or_conflict(self.db, f"Visitor type '{name}' already exists")
        return VisitorTypeOut.model_validate(vt)

    async def delete_type(self, visitor_type_id: str) -> None:
        vt = await self._get(visitor_type_id)
        in_use = await self.db.scalar(
            select(
                or_(
                    exists().where(VisitorRequest.visitor_type_id == vt.id),
                    exists().where(WarehouseWorkflowStep.visitor_type_id == vt.id),
                )
            )
        )
        if in_use:
            raise ConflictError("Visitor type is referenced by workflows or requests and cannot be deleted")
        await self.db.delete(vt)
        await commit_or_conflict(self.db)
