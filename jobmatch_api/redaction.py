"""Log redaction helpers for account data that must not reach log files."""

from __future__ import annotations

import re
from typing import Any

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PASSWORD_HASH_RE = re.compile(r"\$(?:pbkdf2-sha256|pbkdf2|2[aby]|argon2id?)\$[A-Za-z0-9./$+=,-]+")
SENSITIVE_KEYS = frozenset({"password", "passwordhash", "password_hash", "token", "session_id", "cookie"})


def redact_text(value: str, max_length: int = 200) -> str:
    redacted = EMAIL_RE.sub("[REDACTED_EMAIL]", value or "")
    redacted = PASSWORD_HASH_RE.sub("[REDACTED_HASH]", redacted)
    if len(redacted) > max_length:
        return f"{redacted[:max_length]}..."
    return redacted


def redact_for_log(value: Any) -> Any:
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {
            str(k): "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else redact_for_log(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact_for_log(item) for item in value]
    if isinstance(value, tuple):
        return tuple(redact_for_log(item) for item in value)
    return value
