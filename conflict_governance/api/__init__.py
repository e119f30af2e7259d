"""API routes for Conflict Governance."""

from fastapi import APIRouter

from .decisions import router as decisions_router
from .notifications import router as notifications_router
from .overrides import router as overrides_router
from .topics import router as topics_router

# Main API router
api_router = APIRouter()

api_router.include_router(decisions_router)
api_router.include_router(topics_router)
api_router.include_router(overrides_router)
api_router.include_router(notifications_router)

__all__ = ["api_router"]
