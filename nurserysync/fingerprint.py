"""Deterministic cache keys for catalog queries."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Mapping

from .models import FilterSet, SortKey


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Opaque lookup key derived from a filter set and sort key."""

    digest: str

    def short(self) -> str:
        return self.digest[:12]

    def __str__(self) -> str:
        return self.digest


def canonical_query(filters: FilterSet, sort: SortKey) -> dict[str, Any]:
    """Return the normalised mapping hashed into a fingerprint.

    Every field is present, so omitted and explicit defaults hash alike.
    """

    return {
        "filters": filters.model_dump(mode="json"),
        "sort": sort.model_dump(mode="json"),
    }


def fingerprint(
    filters: FilterSet | Mapping[str, Any] | None = None,
    sort: SortKey | Mapping[str, Any] | None = None,
) -> Fingerprint:
    """Return the fingerprint for a (filters, sort) pair."""

    payload = canonical_query(FilterSet.coerce(filters), SortKey.coerce(sort))
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return Fingerprint(hashlib.sha256(encoded.encode("utf-8")).hexdigest())
