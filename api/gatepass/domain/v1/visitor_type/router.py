from fastapi import APIRouter, Depends, Response
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.session import get_db
from gatepass.core.security.auth import get_current_user
from gatepass.core.db.repo.models import User
from gatepass.domain.v1.visitor_type.schema import VisitorTypeIn, VisitorTypeOut
from gatepass.domain.v1.visitor_type.service import VisitorTypeService
from gatepass.utils.helper.helper import require_role

router = APIRouter()


def get_service(db: AsyncSession = Depends(get_db)) -> VisitorTypeService:
    return VisitorTypeService(db)


@router.get("", response_model=List[VisitorTypeOut])
async def list_visitor_types(svc: VisitorTypeService = Depends(get_service), user: User = Depends(get_current_user)):
    require_role(user, ["Admin", "Receptionist", "Approver"])
    return await svc.list_types()


@router.get("/{visitor_type_id}", response_model=VisitorTypeOut)
async def get_visitor_type(
    visitor_type_id: str,
    svc: VisitorTypeService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin", "Receptionist", "Approver"])
    return await svc.get_type(visitor_type_id)


@router.post("", response_model=VisitorTypeOut, status_code=201)
async def create_visitor_type(
    body: VisitorTypeIn,
    svc: VisitorTypeService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.create_type(body)


@router.put("/{visitor_type_id}", response_model=VisitorTypeOut)
async def update_visitor_type(
    visitor_type_id: str,
    body: VisitorTypeIn,
    svc: VisitorTypeService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.update_type(visitor_type_id, body)


@router.delete("/{visitor_type_id}", status_code=204)
async def delete_visitor_type(
    visitor_type_id: str,
    svc: VisitorTypeService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    await svc.delete_type(visitor_type_id)
    return Response(status_code=204)
