"""Password and session-cookie authentication over the local store."""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from datetime import timedelta
from typing import Optional

from fastapi import Request, Response
from passlib.context import CryptContext

from .errors import ConflictError, ForbiddenError, UnauthorizedError, ValidationFailed
from .models import User
from .redaction import redact_text
from .store import LocalStorage

SESSION_COOKIE_NAME = "jobmatch_sid"
DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60
MIN_PASSWORD_LENGTH = 6
audit_logger = logging.getLogger("jobmatch.audit")


class PasswordHasher:
    """Hash/verify capability backed by passlib."""

    def __init__(self, schemes: tuple[str, ...] = ("pbkdf2_sha256",)) -> None:
        self._context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(secret, hashed)
        except (TypeError, ValueError):
            return False


class SessionCookieSigner:
    """Signs session tokens so a forged cookie never reaches the store."""

    def __init__(self, secret: str) -> None:
        self._key = secret.encode("utf-8")

    def _digest(self, token: str) -> str:
        return hmac.new(self._key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, token: str) -> str:
        return f"{token}.{self._digest(token)}"

    def unsign(self, value: Optional[str]) -> Optional[str]:
        token, _, signature = (value or "").rpartition(".")
        if not token or not signature:
            return None
        if not hmac.compare_digest(signature, self._digest(token)):
            return None
        return token


class SessionAuth:
    """Resolves the current principal and opens/closes sessions."""

    def __init__(
        self,
        store: LocalStorage,
        signer: SessionCookieSigner,
        hasher: Optional[PasswordHasher] = None,
        session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        cookie_name: str = SESSION_COOKIE_NAME,
        cookie_secure: bool = False,
    ) -> None:
        self.store = store
        self.signer = signer
        self.hasher = hasher or PasswordHasher()
        self.session_ttl_seconds = max(session_ttl_seconds, 1)
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure

    async def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationFailed("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        display_name = f"{first_name or ''} {last_name or ''}".strip() or email
        try:
            return await self.store.upsert_user(
                {
                    "email": email,
                    "passwordHash": self.hasher.hash(password),
                    "firstName": first_name,
                    "lastName": last_name,
                    "displayName": display_name,
                },
                create_only=True,
            )
        except ConflictError:
            audit_logger.info("audit action=register_conflict email=%s", redact_text(email))
            raise

    async def authenticate(self, email: str, password: str) -> User:
        if not (email or "").strip() or not password:
            raise ValidationFailed("Email and password are required")
        user = await self.store.get_user_by_email(email.strip())
        if user is None or not self.hasher.verify(password, user.password_hash):
            audit_logger.info("audit action=login_failed email=%s", redact_text(email))
            raise UnauthorizedError("Invalid credentials")
        return user

    async def open_session(self, response: Response, user: User) -> None:
        token = str(uuid.uuid4())
        expires_at = self.store.current_time() + timedelta(seconds=self.session_ttl_seconds)
        await self.store.create_session(token, user.id, {"userId": user.id}, expires_at)
        response.set_cookie(
            self.cookie_name,
            self.signer.sign(token),
            max_age=self.session_ttl_seconds,
            httponly=True,
            secure=self.cookie_secure,
            samesite="lax",
        )

    async def close_session(self, request: Request, response: Response) -> None:
        token = self.session_token(request)
        if token:
            await self.store.delete_session(token)
        response.delete_cookie(self.cookie_name, httponly=True, secure=self.cookie_secure, samesite="lax")

    def session_token(self, request: Request) -> Optional[str]:
        return self.signer.unsign(request.cookies.get(self.cookie_name))

    async def resolve_user(self, request: Request) -> Optional[User]:
        """User bound to the request's session cookie, if the session is live."""
        token = self.session_token(request)
        if not token:
            return None
        session = await self.store.get_session(token)
        if session is None:
            return None
        user = await self.store.get_user(session.user_id)
        if user is None:
            await self.store.delete_session(token)
            return None
        return user


def require_user_type(user: User, user_type: str, action: str) -> None:
    if user.user_type != user_type:
        label = "employers" if user_type == "employer" else "job seekers"
        raise ForbiddenError(f"Only {label} can {action}", {"userType": user.user_type})
