"""Account settings and user search endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Depends, Query

from ....errors import ValidationFailed
from ....inputs import CamelModel
from ....models import User
from ....store import LocalStorage
from ..deps import get_current_user, get_store

router = APIRouter(tags=["users"])

MIN_SEARCH_LENGTH = 3


class SelectTypeRequest(CamelModel):
    user_type: Literal["job_seeker", "employer"]


class DisplayNameRequest(CamelModel):
    display_name: str = ""


@router.post("/user/select-type")
async def select_user_type(
    request: SelectTypeRequest,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    # re-selecting is allowed, so this is always an update
    updated = await store.upsert_user({"id": user.id, "email": user.email, "userType": request.user_type})
    return {"success": True, "userType": updated.user_type}


@router.post("/user/display-name")
async def update_display_name(
    request: DisplayNameRequest,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    display_name = request.display_name.strip()
    if not display_name:
        raise ValidationFailed("Display name is required")
    updated = await store.upsert_user({"id": user.id, "email": user.email, "displayName": display_name})
    return {"success": True, "displayName": updated.display_name}


@router.get("/users/search")
async def search_users(
    q: str = Query(default=""),
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    term = q.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return {"items": []}
    return {"items": await store.search_users(user.id, term)}
