"""Top-level v1 API router."""

from __future__ import annotations

from fastapi import APIRouter

from .endpoints.applications import router as applications_router
from .endpoints.auth import router as auth_router
from .endpoints.jobs import router as jobs_router
from .endpoints.messages import router as messages_router
from .endpoints.profiles import router as profiles_router
from .endpoints.users import router as users_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(auth_router)
api_v1_router.include_router(users_router)
api_v1_router.include_router(profiles_router)
api_v1_router.include_router(jobs_router)
api_v1_router.include_router(applications_router)
api_v1_router.include_router(messages_router)
