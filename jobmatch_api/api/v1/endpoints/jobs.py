"""Job posting endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ....auth import require_user_type
from ....errors import APIError, ForbiddenError, NotFoundError
from ....inputs import JobPostingPatch
from ....models import JobPosting, User
from ....queries import JobFilters
from ....store import LocalStorage
from ..deps import get_current_user, get_store

router = APIRouter(tags=["jobs"])


async def owned_posting(store: LocalStorage, user: User, job_id: str, action: str) -> JobPosting:
    """Posting ``job_id`` if it belongs to the calling employer's company."""
    require_user_type(user, "employer", action)
    company = await store.get_company_profile(user.id)
    posting = await store.get_job_posting_by_id(job_id)
    if posting is None:
        raise NotFoundError("Job not found", {"jobId": job_id})
    if company is None or posting.company_id != company.id:
        raise ForbiddenError("Job posting belongs to another company", {"jobId": job_id})
    return posting


@router.get("/jobs")
async def list_jobs(
    search: Optional[str] = Query(default=None),
    location: Optional[str] = Query(default=None),
    job_type: Optional[str] = Query(default=None, alias="jobType"),
    experience_level: Optional[str] = Query(default=None, alias="experienceLevel"),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    filters = JobFilters(
        search=search or None,
        location=location or None,
        job_type=job_type or None,
        experience_level=experience_level or None,
    )
    postings = await store.get_job_postings(filters)
    return {"items": [posting.to_dict() for posting in postings]}


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, store: LocalStorage = Depends(get_store)) -> Dict[str, Any]:
    posting = await store.get_job_posting_by_id(job_id)
    if posting is None:
        raise NotFoundError("Job not found", {"jobId": job_id})
    return posting.to_dict()


@router.post("/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(
    request: Dict[str, Any],
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    require_user_type(user, "employer", "post jobs")
    company = await store.get_company_profile(user.id)
    if company is None:
        raise APIError(400, "PROFILE_REQUIRED", "Company profile required to post jobs")
    payload = {key: value for key, value in request.items() if key not in ("companyId", "company_id")}
    posting = await store.create_job_posting({**payload, "companyId": company.id})
    return posting.to_dict()


@router.patch("/jobs/{job_id}")
async def update_job(
    job_id: str,
    request: JobPostingPatch,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    await owned_posting(store, user, job_id, "edit jobs")
    posting = await store.update_job_posting(job_id, request)
    return posting.to_dict()


@router.delete("/jobs/{job_id}")
async def deactivate_job(
    job_id: str,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    await owned_posting(store, user, job_id, "close jobs")
    posting = await store.deactivate_job_posting(job_id)
    return posting.to_dict()


@router.get("/company/jobs")
async def list_company_jobs(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    company = await store.get_company_profile(user.id)
    if company is None:
        raise NotFoundError("Company profile not found")
    postings = await store.get_job_postings_by_company(company.id)
    return {"items": [posting.to_dict() for posting in postings]}
