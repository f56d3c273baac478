from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class WorkflowStepCreate(BaseModel):
    warehouse_id: str
    visitor_type_id: str
    step_no: int
    approver_id: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "warehouse_id": "5d7c3c6e-3f3a-4d5e-9b1a-2f0e8c1b7a11",
                "visitor_type_id": "0b6f1c2d-8e4a-4c3b-a1d2-7e9f0a1b2c3d",
                "step_no": 1,
                "approver_id": "9a8b7c6d-5e4f-4a3b-9c2d-1e0f2a3b4c5d",
            }
        }
    )


class WorkflowStepUpdate(BaseModel):
    step_no: int
    approver_id: str


class WorkflowStepOut(BaseModel):
    id: str
    warehouse_id: str
    visitor_type_id: str
    step_no: int
    approver_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class WorkflowStepChangeOut(BaseModel):
    step: WorkflowStepOut
    # pending requests that received a ledger because of this step
    affected_request_ids: List[str] = []


class WorkflowStepDeleteOut(BaseModel):
    id: str
    affected_request_ids: List[str] = []
    completed_request_ids: List[str] = Field(
        default_factory=list,
        description="Requests whose status became terminal once the step was retracted",
    )


class WorkflowStepBrief(BaseModel):
    id: str
    step_no: int
    approver_id: str
    approver: Optional[str] = None


class VisitorTypeWorkflowOut(BaseModel):
    visitor_type_id: str
    visitor_type: str
    steps: List[WorkflowStepBrief] = []
