"""JobMatch API package."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import app, create_app, main
    from .store import LocalStorage

_EXPORTS = {
    "app": ".app",
    "create_app": ".app",
    "main": ".app",
    "LocalStorage": ".store",
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(_EXPORTS))


__all__ = ["LocalStorage", "app", "create_app", "main"]
