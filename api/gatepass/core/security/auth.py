# gatepass/core/security/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.config.config import settings
from gatepass.core.db.session import get_db
from gatepass.core.db.repo.models import User
from gatepass.domain.workflow.ports import Actor

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"


# ---------- Password helpers ----------
def hash_password(raw: str) -> str:
    return pwd_ctx.hash(raw)

def verify_password(raw: str, hashed: str) -> bool:
    return pwd_ctx.verify(raw, hashed)


# ---------- JWT helpers ----------
def _expiry(minutes: int) -> int:
    return int((datetime.now(tz=timezone.utc) + timedelta(minutes=minutes)).timestamp())

def create_access_token(sub: str, role: Optional[str] = None) -> str:
    """Staff access token; ``sub`` is the user id, ``role`` is informational only."""
    claims = {"sub": sub, "type": ACCESS, "exp": _expiry(settings.ACCESS_TOKEN_MIN)}
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET.get_secret_value(), algorithm=settings.JWT_ALG)

def decode_token(token: str) -> Dict:
    return jwt.decode(token, settings.JWT_SECRET.get_secret_value(), algorithms=[settings.JWT_ALG])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _claims_for(request: Request) -> Dict:
    # jwt_middleware normally decoded the token already
    claims = getattr(request.state, "user", None)
    if claims is not None:
        return claims

    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise _unauthorized("Unauthorized")
    try:
        return decode_token(token.strip())
    except JWTError:
        raise _unauthorized("Invalid token")


# ---------- Current user dependency ----------
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to an active staff user.

    Roles are always read from the user row, never from the token, so a role
    change or deactivation takes effect on the next request.
    """
    claims = _claims_for(request)
    if claims.get("type") != ACCESS:
        raise _unauthorized("Invalid token type")

    user_id: Optional[str] = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User disabled or not found")
    return user


def actor_for(user: User) -> Actor:
    return Actor(user_id=str(user.id), role=user.role)
