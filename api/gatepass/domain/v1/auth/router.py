# gatepass/domain/v1/auth/router.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from gatepass.core.db.session import get_db
from gatepass.core.db.repo.models import User
from gatepass.core.security.auth import verify_password, create_access_token, get_current_user
from gatepass.domain.v1.auth.schema import LoginIn, TokenOut
from gatepass.domain.v1.user.schema import UserOut

router = APIRouter()


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    email = (payload.email or "").strip().lower()
    q = await db.execute(select(User).where(User.email == email))
    user = q.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User disabled",
        )

    return TokenOut(access_token=create_access_token(sub=str(user.id), role=user.role))


@router.get("/me", response_model=UserOut)
async def me(current: User = Depends(get_current_user)):
    return current
