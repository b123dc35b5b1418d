"""
API routes aggregation.
"""

from fastapi import APIRouter

from .authorizations import router as authorizations_router
from .tasks import router as tasks_router

router = APIRouter()

router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
router.include_router(authorizations_router, prefix="/authorizations", tags=["authorizations"])
