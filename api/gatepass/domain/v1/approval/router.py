from fastapi import APIRouter, Depends
from typing import List

from gatepass.core.security.auth import actor_for, get_current_user
from gatepass.core.db.repo.models import User
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.v1.approval.schema import ApprovalTaskOut, DecisionIn, DecisionOut
from gatepass.domain.v1.approval.service import ApprovalService
from gatepass.utils.deps import get_engine, get_store
from gatepass.utils.helper.helper import require_role

router = APIRouter()

APPROVERS = ["Admin", "Approver"]


def get_service(store=Depends(get_store), engine: WorkflowEngine = Depends(get_engine)) -> ApprovalService:
    return ApprovalService(store, engine)


@router.get("/pending", response_model=List[ApprovalTaskOut])
async def pending_approvals(
    svc: ApprovalService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, APPROVERS)
    return await svc.pending_for_approver(user.id)


@router.get("/history", response_model=List[ApprovalTaskOut])
async def approval_history(
    svc: ApprovalService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, APPROVERS)
    return await svc.history_for_approver(user.id)


@router.patch("/{approval_id}/decision", response_model=DecisionOut)
async def decide_approval(
    approval_id: str,
    body: DecisionIn,
    svc: ApprovalService = Depends(get_service),
    user: User = Depends(get_current_user),
):
    require_role(user, APPROVERS)
    return await svc.decide(actor_for(user), approval_id, body)
