from fastapi import APIRouter, Depends
from typing import List

from gatepass.core.security.auth import get_current_user
from gatepass.core.db.repo.models import User
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.v1.workflow.schema import (
    WorkflowStepCreate, WorkflowStepUpdate, WorkflowStepOut, WorkflowStepChangeOut,
    WorkflowStepDeleteOut, VisitorTypeWorkflowOut,
)
from gatepass.domain.v1.workflow.service import WorkflowTemplateService
from gatepass.utils.deps import get_engine, get_store
from gatepass.utils.helper.helper import require_role

router = APIRouter()

STAFF = ["Admin", "Receptionist", "Approver"]


def get_service(store=Depends(get_store), engine: WorkflowEngine = Depends(get_engine)) -> WorkflowTemplateService:
    return WorkflowTemplateService(store, engine)


@router.get("/{warehouse_id}", response_model=List[VisitorTypeWorkflowOut])
async def list_workflow_by_warehouse(
    warehouse_id: str,
    svc: WorkflowTemplateService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, STAFF)
    return await svc.list_for_warehouse(warehouse_id)


@router.post("", response_model=WorkflowStepChangeOut, status_code=201)
async def add_workflow_step(
    body: WorkflowStepCreate,
    svc: WorkflowTemplateService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.add_step(body)


@router.put("/{step_id}", response_model=WorkflowStepOut)
async def update_workflow_step(
    step_id: str,
    body: WorkflowStepUpdate,
    svc: WorkflowTemplateService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.update_step(step_id, body)


@router.delete("/{step_id}", response_model=WorkflowStepDeleteOut)
async def delete_workflow_step(
    step_id: str,
    svc: WorkflowTemplateService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, ["Admin"])
    return await svc.delete_step(step_id)
