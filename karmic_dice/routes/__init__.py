"""FastAPI API endpoints under /api.

Endpoint groups: health + settings + bias preview, dice pool rolls per user,
and the operator averages view (JSON per user, all users, HTML table).
"""

from fastapi import APIRouter

from .averages import router as averages_router
from .rolls import router as rolls_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(rolls_router)
router.include_router(averages_router)
