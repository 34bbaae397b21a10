"""Job application endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status

from ....auth import require_user_type
from ....errors import APIError, NotFoundError
from ....inputs import CamelModel
from ....models import User
from ....store import LocalStorage
from ..deps import get_current_user, get_store
from .jobs import owned_posting

router = APIRouter(tags=["applications"])


class ApplyRequest(CamelModel):
    cover_letter: Optional[str] = None


class UpdateStatusRequest(CamelModel):
    status: str


@router.post("/jobs/{job_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    job_id: str,
    request: ApplyRequest,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    require_user_type(user, "job_seeker", "apply for jobs")
    profile = await store.get_job_seeker_profile(user.id)
    if profile is None:
        raise APIError(400, "PROFILE_REQUIRED", "Job seeker profile required to apply")
    posting = await store.get_job_posting_by_id(job_id)
    if posting is None or not posting.is_active:
        raise NotFoundError("Job not found", {"jobId": job_id})
    application = await store.create_job_application(
        {"jobId": job_id, "applicantId": profile.id, "coverLetter": request.cover_letter}
    )
    return application.to_dict()


@router.get("/job-seeker/applications")
async def list_my_applications(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    profile = await store.get_job_seeker_profile(user.id)
    if profile is None:
        raise NotFoundError("Job seeker profile not found")
    applications = await store.get_job_applications_by_applicant(profile.id)
    return {"items": [item.to_dict() for item in applications]}


@router.get("/jobs/{job_id}/applications")
async def list_job_applications(
    job_id: str,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    await owned_posting(store, user, job_id, "view applications")
    applications = await store.get_job_applications_by_job(job_id)
    return {"items": [item.to_dict() for item in applications]}


@router.patch("/applications/{application_id}/status")
async def update_application_status(
    application_id: str,
    request: UpdateStatusRequest,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    require_user_type(user, "employer", "update application status")
    application = await store.get_job_application(application_id)
    if application is None:
        raise NotFoundError("Job application not found", {"applicationId": application_id})
    await owned_posting(store, user, application.job_id, "update application status")
    updated = await store.update_job_application_status(application_id, request.status)
    return updated.to_dict()
