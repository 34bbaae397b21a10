"""FastAPI app entrypoint for the JobMatch API."""

from __future__ import annotations

import logging
import os
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from pathlib import Path
from time import monotonic, perf_counter

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.v1.router import api_v1_router
from .auth import DEFAULT_SESSION_TTL_SECONDS, PasswordHasher, SessionAuth, SessionCookieSigner
from .errors import APIError, api_error_handler, validation_error_handler
from .store import DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS, LocalStorage

logger = logging.getLogger("jobmatch.api")

DEV_SESSION_SECRET = "dev-only-session-secret-change-me"
RATE_LIMITED_PATHS = ("/api/v1/auth/login", "/api/v1/auth/register")


class InMemoryRateLimiter:
    """Simple fixed-window limiter keyed by client address."""

    def __init__(self, max_requests_per_minute: int) -> None:
        self._max_requests = max_requests_per_minute
        self._events: dict[str, deque[float]] = defaultdict(deque)

    def allow(self, client_key: str) -> bool:
        now = monotonic()
        window_start = now - 60
        queue = self._events[client_key]
        while queue and queue[0] < window_start:
            queue.popleft()
        if len(queue) >= self._max_requests:
            return False
        queue.append(now)
        return True


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    data_dir = Path(os.getenv("JOBMATCH_DATA_DIR", "./data")).resolve()
    session_secret = os.getenv("JOBMATCH_SESSION_SECRET", "").strip()
    session_ttl_seconds = int(os.getenv("JOBMATCH_SESSION_TTL_SECONDS", str(DEFAULT_SESSION_TTL_SECONDS)))
    sweep_interval_seconds = float(
        os.getenv("JOBMATCH_SESSION_SWEEP_INTERVAL_SECONDS", str(DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS))
    )
    cookie_secure = _env_flag("JOBMATCH_COOKIE_SECURE", False)
    allow_duplicate_applications = _env_flag("JOBMATCH_ALLOW_DUPLICATE_APPLICATIONS", True)
    max_auth_requests_per_minute = int(os.getenv("JOBMATCH_AUTH_RATE_LIMIT_RPM", "60"))

    if not session_secret:
        logger.warning("session_secret_missing using_development_default=true")
        session_secret = DEV_SESSION_SECRET

    store = LocalStorage(
        data_dir=data_dir,
        session_sweep_interval_seconds=sweep_interval_seconds,
        allow_duplicate_applications=allow_duplicate_applications,
    )
    auth = SessionAuth(
        store=store,
        signer=SessionCookieSigner(session_secret),
        hasher=PasswordHasher(),
        session_ttl_seconds=session_ttl_seconds,
        cookie_secure=cookie_secure,
    )
    rate_limiter = InMemoryRateLimiter(max_requests_per_minute=max_auth_requests_per_minute)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await store.start()
        try:
            yield
        finally:
            await store.stop()

    app = FastAPI(title="JobMatch API", version="0.1.0", lifespan=lifespan)
    app.state.store = store
    app.state.auth = auth
    app.include_router(api_v1_router)

    @app.middleware("http")
    async def auth_rate_limit_middleware(request: Request, call_next):
        if request.method == "POST" and request.url.path in RATE_LIMITED_PATHS:
            client_key = request.client.host if request.client else "-"
            if not rate_limiter.allow(client_key):
                err = APIError(
                    429,
                    "RATE_LIMITED",
                    "Too many authentication attempts",
                    {"limit_per_minute": max_auth_requests_per_minute},
                )
                return JSONResponse(status_code=err.status_code, content=err.to_dict())
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.info(
                "api_request method=%s path=%s status=%s duration_ms=%.2f user_id=%s",
                request.method,
                request.url.path,
                500,
                (perf_counter() - start) * 1000,
                getattr(request.state, "user_id", "-"),
            )
            raise

        logger.info(
            "api_request method=%s path=%s status=%s duration_ms=%.2f user_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - start) * 1000,
            getattr(request.state, "user_id", "-"),
        )
        return response

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict:
        return {"status": "ok"}

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    return app


app = create_app()


def main() -> None:
    """Run development API server."""
    import uvicorn

    uvicorn.run("jobmatch_api.app:app", host="127.0.0.1", port=8000)
