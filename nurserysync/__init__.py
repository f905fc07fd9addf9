"""Nursery catalog synchronisation package."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["CatalogSession", "app", "create_app"]

_EXPORTS = {
    "CatalogSession": "nurserysync.session",
    "app": "nurserysync.main",
    "create_app": "nurserysync.main",
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module 'nurserysync' has no attribute {name}")
