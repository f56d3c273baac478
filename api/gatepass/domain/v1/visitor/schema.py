from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
import datetime as dt


class VisitorRequestCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=150)
    visitor_type_id: str
    warehouse_id: str
    warehouse_time_slot_id: str
    date: dt.date
    accompanying: List[Any] = []

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Asha Verma",
                "phone": "+91 98765 43210",
                "email": "asha@example.com",
                "visitor_type_id": "0b6f1c2d-8e4a-4c3b-a1d2-7e9f0a1b2c3d",
                "warehouse_id": "5d7c3c6e-3f3a-4d5e-9b1a-2f0e8c1b7a11",
                "warehouse_time_slot_id": "7c1d2e3f-4a5b-4c6d-8e7f-9a0b1c2d3e4f",
                "date": "2026-01-15",
                "accompanying": [{"name": "Ravi Verma"}],
            }
        }
    )


class VisitorRequestOut(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    visitor_type_id: str
    warehouse_id: str
    warehouse_time_slot_id: str
    date: dt.date
    accompanying: Optional[List[Any]] = None
    status: str
    tracking_code: str
    visit_status: str
    arrived_at: Optional[dt.datetime] = None
    checked_out_at: Optional[dt.datetime] = None
    punctuality: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SubmittedOut(BaseModel):
    id: str
    tracking_code: str
    status: str
    approval_steps: int


class LedgerRowOut(BaseModel):
    step_no: int
    status: str
    approver: Optional[str] = None
    reason: Optional[str] = None
    decided_at: Optional[dt.datetime] = None


class VisitorRequestDetailOut(VisitorRequestOut):
    approvals: List[LedgerRowOut] = []


class TrackingOut(BaseModel):
    tracking_code: str
    name: str
    date: dt.date
    status: str
    visit_status: str
    approvals: List[LedgerRowOut] = []


class PaginationOut(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class VisitorRequestListOut(BaseModel):
    data: List[VisitorRequestOut]
    pagination: PaginationOut
