"""APIRouter registration for the survey graph service."""

from __future__ import annotations

from fastapi import APIRouter

from surveygraph.routes.admin import router as admin_router
from surveygraph.routes.surveys import router as surveys_router

api_router = APIRouter()
api_router.include_router(surveys_router)
api_router.include_router(admin_router)

__all__ = ["api_router"]
