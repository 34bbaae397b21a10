"""Registration, login and session endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response, status

from ....auth import SessionAuth
from ....inputs import CamelModel
from ....models import User
from ....store import LocalStorage
from ..deps import get_auth, get_current_user, get_store

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(CamelModel):
    email: str = ""
    password: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    response: Response,
    auth: SessionAuth = Depends(get_auth),
) -> Dict[str, Any]:
    user = await auth.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    await auth.open_session(response, user)
    return {"message": "User registered successfully", "user": user.public_view()}


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    auth: SessionAuth = Depends(get_auth),
) -> Dict[str, Any]:
    user = await auth.authenticate(email=request.email, password=request.password)
    await auth.open_session(response, user)
    return {"message": "Login successful", "user": user.public_view()}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    auth: SessionAuth = Depends(get_auth),
) -> Dict[str, str]:
    await auth.close_session(request, response)
    return {"message": "Logout successful"}


@router.get("/user")
async def current_user(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    profile = None
    if user.user_type == "job_seeker":
        profile = await store.get_job_seeker_profile(user.id)
    elif user.user_type == "employer":
        profile = await store.get_company_profile(user.id)
    return {
        **user.public_view(),
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
        "profile": profile.to_dict() if profile else None,
    }


@router.get("/status")
async def auth_status(request: Request, auth: SessionAuth = Depends(get_auth)) -> Dict[str, bool]:
    return {"authenticated": await auth.resolve_user(request) is not None}
