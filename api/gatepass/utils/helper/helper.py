from fastapi import HTTPException
from typing import Any, List, Optional
from datetime import date, datetime
from zoneinfo import ZoneInfo
import re

from gatepass.core.config.config import settings
from gatepass.core.db.repo.models import User, Role
from gatepass.core.errors import ValidationError

TZ = ZoneInfo(settings.TIMEZONE)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def now_local() -> datetime:
    return datetime.now(TZ)

def today_local() -> date:
    return now_local().date()

def require_role(user: User, allowed: List[Role]) -> None:
    if user.role not in allowed:
        raise HTTPException(status_code=403, detail="Forbidden")

def validate_uuid(value: Any, field: str) -> str:
    if not isinstance(value, str) or not UUID_RE.match(value.strip()):
        raise ValidationError(f"Invalid {field}: must be a valid UUID", details={"field": field})
    return value.strip().lower()

def validate_step_no(value: Any) -> int:
    # bool is an int subclass; True must not pass as step 1
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("step_no must be a positive integer", details={"field": "step_no"})
    return value

def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None

def validate_email(value: Optional[str]) -> Optional[str]:
    value = clean_text(value)
    if value is None:
        return None
    if not EMAIL_RE.match(value):
        raise ValidationError("Invalid email address", details={"field": "email"})
    return value.lower()
