"""API error helpers and exception handlers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class APIError(Exception):
    """Application-level API error with status/code mapping."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class _TypedAPIError(APIError):
    status = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(self.status, self.error_code, message, details)


class ValidationFailed(_TypedAPIError):
    """Input rejected before any mutation."""

    status = 400
    error_code = "VALIDATION_ERROR"


class UnauthorizedError(_TypedAPIError):
    status = 401
    error_code = "UNAUTHORIZED"


class ForbiddenError(_TypedAPIError):
    status = 403
    error_code = "FORBIDDEN"


class NotFoundError(_TypedAPIError):
    status = 404
    error_code = "NOT_FOUND"


class ConflictError(_TypedAPIError):
    status = 409
    error_code = "CONFLICT"


class StorageError(_TypedAPIError):
    """Backing file could not be created, read or written."""

    status = 500
    error_code = "STORAGE_ERROR"


async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
    """Render contract-compliant error response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Normalize FastAPI validation errors to API contract shape."""
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "BAD_REQUEST",
                "message": "Invalid request payload",
                "details": {"errors": _jsonable_errors(exc.errors())},
            }
        },
    )


def _jsonable_errors(errors: Any) -> Any:
    # pydantic may attach the raw exception under "ctx"
    cleaned = []
    for item in errors:
        entry = dict(item)
        ctx = entry.get("ctx")
        if isinstance(ctx, dict):
            entry["ctx"] = {key: str(value) for key, value in ctx.items()}
        cleaned.append(entry)
    return cleaned
