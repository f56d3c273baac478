from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import datetime as dt

from gatepass.core.db.repo.models import Role


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=150)
    phone: Optional[str] = Field(None, max_length=20)
    password: str = Field(..., min_length=8)
    designation: Optional[str] = Field(None, max_length=100)
    role: Role
    warehouse_id: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    password: Optional[str] = Field(None, min_length=8)
    designation: Optional[str] = Field(None, max_length=100)
    role: Optional[Role] = None
    warehouse_id: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    designation: Optional[str] = None
    role: str
    warehouse_id: Optional[str] = None
    is_active: bool
    created_at: Optional[dt.datetime] = None
    model_config = ConfigDict(from_attributes=True)
