from fastapi import APIRouter, Depends, Query
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.session import get_db
from gatepass.core.security.auth import get_current_user
from gatepass.core.db.repo.models import User
from gatepass.domain.v1.user.schema import UserCreate, UserOut, UserUpdate
from gatepass.domain.v1.user.service import UserService
from gatepass.utils.helper.helper import require_role

router = APIRouter()


def get_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=List[UserOut])
async def list_users(
    include_inactive: bool = Query(False),
    svc: UserService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.list_users(include_inactive=include_inactive)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, svc: UserService = Depends(get_service), user: User = Depends(get_current_user)):
    require_role(user, ["Admin"])
    return await svc.get_user(user_id)


@router.post("", response_model=UserOut, status_code=201)
async def create_user(body: UserCreate, svc: UserService = Depends(get_service), user: User = Depends(get_current_user)):
    require_role(user, ["Admin"])
    return await svc.create_user(body)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    body: UserUpdate,
    svc: UserService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.update_user(user_id, body, actor_id=user.id)


@router.delete("/{user_id}", response_model=UserOut)
async def deactivate_user(user_id: str, svc: UserService = Depends(get_service), user: User = Depends(get_current_user)):
    require_role(user, ["Admin"])
    return await svc.deactivate_user(user_id, actor_id=user.id)
