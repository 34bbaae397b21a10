"""Job seeker and company profile endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ....inputs import CompanyProfilePatch, JobSeekerProfilePatch
from ....models import User
from ....store import LocalStorage
from ..deps import get_current_user, get_store

router = APIRouter(tags=["profiles"])


@router.get("/job-seeker/profile")
async def get_job_seeker_profile(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Optional[Dict[str, Any]]:
    profile = await store.get_job_seeker_profile(user.id)
    return profile.to_dict() if profile else None


@router.post("/job-seeker/profile")
async def save_job_seeker_profile(
    request: JobSeekerProfilePatch,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    """Create the caller's profile on first save, patch it afterwards."""
    if await store.get_job_seeker_profile(user.id):
        profile = await store.update_job_seeker_profile(user.id, request)
    else:
        profile = await store.create_job_seeker_profile({**request.model_dump(exclude_unset=True), "user_id": user.id})
    return profile.to_dict()


@router.get("/company/profile")
async def get_company_profile(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Optional[Dict[str, Any]]:
    profile = await store.get_company_profile(user.id)
    return profile.to_dict() if profile else None


@router.post("/company/profile")
async def save_company_profile(
    request: CompanyProfilePatch,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    if await store.get_company_profile(user.id):
        profile = await store.update_company_profile(user.id, request)
    else:
        profile = await store.create_company_profile({**request.model_dump(exclude_unset=True), "user_id": user.id})
    return profile.to_dict()
