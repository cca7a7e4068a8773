"""API router aggregator.

All endpoint routers are included here and mounted under /api.
"""

from fastapi import APIRouter

from app.api import auth

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])
