from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
import datetime as dt


class RequestSummaryOut(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    visitor_type_id: str
    warehouse_id: str
    warehouse_time_slot_id: str
    date: dt.date
    accompanying: Optional[List[Any]] = None
    tracking_code: str
    status: str
    model_config = ConfigDict(from_attributes=True)


class ApprovalOut(BaseModel):
    id: str
    visitor_request_id: str
    step_no: int
    approver_id: str
    status: str
    reason: Optional[str] = None
    decided_at: Optional[dt.datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ApprovalTaskOut(BaseModel):
    approval: ApprovalOut
    request: RequestSummaryOut


class DecisionIn(BaseModel):
    decision: str = Field(..., examples=["approved"])  # approved or rejected
    reason: Optional[str] = Field(None, examples=["No valid ID badge"])

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "decision": "rejected",
                "reason": "No valid ID badge",
            }
        }
    )


class DecisionOut(BaseModel):
    approval: ApprovalOut
    request_status: str
    notified: bool = False
