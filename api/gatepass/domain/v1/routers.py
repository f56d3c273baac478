from fastapi import APIRouter
from .health.router import router as health_router
from .auth.router import router as auth_router
from .public.router import router as public_router
from .visitor.router import router as visitor_router
from .approval.router import router as approval_router
from .workflow.router import router as workflow_router
from .warehouse.router import router as warehouse_router
from .visitor_type.router import router as visitor_type_router
from .user.router import router as user_router

router = APIRouter()

# Base health (no prefix under /api/v1)
router.include_router(health_router, tags=["health"])

# Versioned domains
router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(public_router, prefix="/public", tags=["public"])
router.include_router(visitor_router, prefix="/visitor", tags=["visitor"])
router.include_router(approval_router, prefix="/approval", tags=["approval"])
router.include_router(workflow_router, prefix="/workflow", tags=["workflow"])
router.include_router(warehouse_router, prefix="/warehouse", tags=["warehouse"])
router.include_router(visitor_type_router, prefix="/visitor-type", tags=["visitor_type"])
router.include_router(user_router, prefix="/user", tags=["user"])
