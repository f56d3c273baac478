import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.repo.models import User, Warehouse
from gatepass.core.db.session import commit_or_conflict
from gatepass.core.errors import ConflictError, NotFoundError, ValidationError
from gatepass.core.security.auth import hash_password
from gatepass.domain.workflow.engine import new_id
from gatepass.domain.v1.user.schema import UserCreate, UserOut, UserUpdate
from gatepass.utils.helper.helper import clean_text, validate_email, validate_uuid

log = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, user_id: str) -> User:
        user = await self.db.get(User, validate_uuid(user_id, "user_id"))
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _check_warehouse(self, warehouse_id: Optional[str]) -> Optional[str]:
        if not warehouse_id:
            return None
        warehouse_id = validate_uuid(warehouse_id, "warehouse_id")
        if await self.db.get(Warehouse, warehouse_id) is None:
            raise NotFoundError("Warehouse not found")
        return warehouse_id

    async def list_users(self, *, include_inactive: bool = False) -> List[UserOut]:
        q = select(User).order_by(User.name.asc())
        if not include_inactive:
            q = q.where(User.is_active.is_(True))
        return [UserOut.model_validate(u) for u in (await self.db.execute(q)).scalars().all()]

    async def get_user(self, user_id: str) -> UserOut:
        return UserOut.model_validate(await self._get(user_id))

    async def create_user(self, body: UserCreate) -> UserOut:
        email = validate_email(body.email)
        if not email:
            raise ValidationError("email is required", details={"field": "email"})
        if await self.db.scalar(select(User.id).where(User.email == email).limit(1)):
            raise ConflictError("A user with this email already exists")

        user = User(
            id=new_id(),
            name=clean_text(body.name),
            email=email,
            phone=clean_text(body.phone),
            password=hash_password(body.password),
            designation=clean_text(body.designation),
            role=body.role,
            warehouse_id=await self._check_warehouse(body.warehouse_id),
            is_active=True,
        )
        self.db.add(user)
        await commit_or_conflict(self.db, "A user with this email already exists")
        log.info("user %s created with role %s", user.id, user.role)
        return UserOut.model_validate(user)

    async def update_user(self, user_id: str, body: UserUpdate, *, actor_id: Optional[str] = None) -> UserOut:
        user = await self._get(user_id)
        data = body.model_dump(exclude_unset=True)
        if data.get("is_active") is False and user.id == actor_id:
            raise ConflictError("You cannot deactivate your own account")

        if "name" in data and data["name"] is not None:
            user.name = clean_text(data["name"])
        if "phone" in data:
            user.phone = clean_text(data["phone"])
        if "designation" in data:
            user.designation = clean_text(data["designation"])
        if data.get("role"):
            user.role = data["role"]
        if "warehouse_id" in data:
            user.warehouse_id = await self._check_warehouse(data["warehouse_id"])
        if data.get("password"):
            user.password = hash_password(data["password"])
        if data.get("is_active") is not None:
            user.is_active = data["is_active"]

        await commit_or_conflict(self.db)
        return UserOut.model_validate(user)

    async def deactivate_user(self, user_id: str, *, actor_id: str) -> UserOut:
        user = await self._get(user_id)
        if user.id == actor_id:
            raise ConflictError("You cannot deactivate your own account")
        user.is_active = False
        await commit_or_conflict(self.db)
        log.info("user %s deactivated by %s", user.id, actor_id)
        return UserOut.model_validate(user)
