"""Utility helpers for the nursery catalog."""

from __future__ import annotations

import json
import re
from typing import Any


EXTENSION_RE = re.compile(r"^[a-z0-9]{1,8}$")


def plant_initials(common_name: str | None, scientific_name: str | None) -> str:
    """Return up to two upper-case initials for placeholder artwork."""

    name = (common_name or scientific_name or "").strip()
    letters = [word[0] for word in name.split() if word]
    return "".join(letters).upper()[:2]


def coerce_media_list(value: Any) -> list[str]:
    """Normalise the stored media column into an ordered list of references.

    The column has historically held ``null``, a single URL string, a JSON
    encoded array, or a real array.
    """

    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ValueError("Media column holds malformed JSON") from exc
            return coerce_media_list(decoded)
        return [text]
    if isinstance(value, (list, tuple)):
        refs: list[str] = []
        for entry in value:
            if entry is None:
                continue
            if not isinstance(entry, str):
                raise ValueError("Media references must be strings")
            cleaned = entry.strip()
            if cleaned:
                refs.append(cleaned)
        return refs
    raise ValueError("Unsupported media column value")


def file_extension(filename: str | None, default: str = "jpg") -> str:
    """Return a safe lower-case extension for an uploaded file name."""

    if not filename or "." not in filename:
        return default
    candidate = filename.rsplit(".", 1)[-1].strip().lower()
    if EXTENSION_RE.match(candidate):
        return candidate
    return default
