"""Dependency providers for v1 API."""

from __future__ import annotations

from fastapi import Depends, Request

from ...auth import SessionAuth
from ...errors import UnauthorizedError
from ...models import User
from ...store import LocalStorage


def get_store(request: Request) -> LocalStorage:
    """Access shared document store from app state."""
    return request.app.state.store


def get_auth(request: Request) -> SessionAuth:
    return request.app.state.auth


async def get_current_user(request: Request, auth: SessionAuth = Depends(get_auth)) -> User:
    """Resolve the session cookie to a user or fail with 401."""
    user = await auth.resolve_user(request)
    if user is None:
        raise UnauthorizedError("Authentication required")
    request.state.user_id = user.id
    return user
