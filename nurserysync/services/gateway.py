"""Client for the remote catalog store's REST query protocol."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..errors import NotFoundError, SchemaError, TransportError, ValidationError
from ..models import FilterSet, Item, ItemPatch, RemotePage, SortKey

logger = logging.getLogger(__name__)

CONTENT_RANGE_RE = re.compile(r"^\s*(?:\d+-\d+|\*)\s*/\s*(\d+|\*)\s*$")

# FilterSet attribute -> store column for the substring predicates.
SUBSTRING_COLUMNS: tuple[tuple[str, str], ...] = (
    ("type", "type"),
    ("sun_exposure", "sun_exposure"),
    ("wind_tolerance", "wind_tolerance"),
    ("flowering_season", "flowering_season"),
)
SEARCH_COLUMNS: tuple[str, ...] = ("common_name", "scientific_name")


class RemoteCatalogGateway:
    """Translate catalog queries into ranged requests against the store.

    The gateway never retries; every failure is raised to the caller as a
    :class:`TransportError` or :class:`SchemaError`.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None):
        self._settings = settings
        self._client = http_client
        self._path = f"/{settings.catalog_table}"

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _headers(self, *, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (nurserysync)",
        }
        api_key = self._settings.catalog_api_key
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def fetch_page(
        self,
        filters: FilterSet,
        sort: SortKey,
        offset: int,
        limit: int,
    ) -> RemotePage:
        """Fetch ``limit`` matching rows starting at ``offset``."""

        if offset < 0:
            raise ValidationError("Offset must not be negative")
        if limit < 1:
            raise ValidationError("Limit must be at least 1")

        params = build_query_params(filters, sort)
        params.extend([("offset", str(offset)), ("limit", str(limit))])
        response = await self._send(
            "GET",
            params=params,
            headers=self._headers(prefer="count=exact"),
            allow_statuses=(416,),
        )
        if response.status_code == 416:
            # Offset past the end of the result set.
            total = parse_content_range(response.headers.get("content-range"))
            return RemotePage(items=[], exact_count=total or 0)

        items = self._parse_rows(response)
        total = parse_content_range(response.headers.get("content-range"))
        if total is None:
            total = offset + len(items)
        return RemotePage(items=items, exact_count=total)

    async def fetch_by_id(self, item_id: int) -> Item | None:
        """Return the item with ``item_id`` or ``None`` when it does not exist."""

        params = [("select", "*"), ("id", f"eq.{int(item_id)}")]
        response = await self._send("GET", params=params, headers=self._headers())
        items = self._parse_rows(response)
        if not items:
            return None
        return items[0]

    async def update(
        self, item_id: int, patch: ItemPatch | Mapping[str, Any]
    ) -> Item:
        """Apply a partial update and return the stored record."""

        if not isinstance(patch, ItemPatch):
            try:
                patch = ItemPatch.model_validate(dict(patch))
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid patch: {exc}") from exc
        if patch.is_empty():
            raise ValidationError("Patch must set at least one field")

        params = [("id", f"eq.{int(item_id)}"), ("select", "*")]
        response = await self._send(
            "PATCH",
            params=params,
            json=patch.to_payload(),
            headers=self._headers(prefer="return=representation"),
        )
        items = self._parse_rows(response)
        if not items:
            raise NotFoundError(f"Plant {item_id} does not exist")
        return items[0]

    async def _send(
        self,
        method: str,
        *,
        params: list[tuple[str, str]],
        headers: dict[str, str],
        json: Any | None = None,
        allow_statuses: tuple[int, ...] = (),
    ) -> httpx.Response:
        if self._client is None:
            raise TransportError("Remote catalog is not configured")
        try:
            response = await self._client.request(
                method, self._path, params=params, headers=headers, json=json
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Catalog store %s request failed (%s): %s",
                method,
                exc.__class__.__name__,
                exc,
            )
            raise TransportError(
                f"Catalog store unreachable: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400 and response.status_code not in allow_statuses:
            logger.warning(
                "Catalog store %s answered %s: %s",
                method,
                response.status_code,
                response.text[:200],
            )
            raise TransportError(
                f"Catalog store answered {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse_rows(response: httpx.Response) -> list[Item]:
        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaError("Catalog store returned a non-JSON body") from exc
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise SchemaError("Catalog store returned an unexpected payload shape")
        try:
            return [Item.model_validate(row) for row in data]
        except (PydanticValidationError, TypeError) as exc:
            raise SchemaError(f"Catalog row could not be normalised: {exc}") from exc


def build_query_params(filters: FilterSet, sort: SortKey) -> list[tuple[str, str]]:
    """Return the list-query parameters for ``filters`` ordered by ``sort``."""

    params: list[tuple[str, str]] = [("select", "*")]

    search = filters.term("search")
    if search:
        pattern = _quote_pattern(search)
        clauses = ",".join(f"{column}.ilike.{pattern}" for column in SEARCH_COLUMNS)
        params.append(("or", f"({clauses})"))

    for attribute, column in SUBSTRING_COLUMNS:
        value = filters.term(attribute)
        if value:
            params.append((column, f"ilike.*{value}*"))

    if filters.acquired is not None:
        params.append(("bought", f"eq.{str(filters.acquired).lower()}"))

    order = f"{sort.column}.{sort.direction}.nullslast"
    if sort.column != "id":
        order = f"{order},id.asc"
    params.append(("order", order))
    return params


def parse_content_range(value: str | None) -> int | None:
    """Extract the total from a ``Content-Range`` header such as ``0-19/57``."""

    if not value:
        return None
    match = CONTENT_RANGE_RE.match(value)
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


def _quote_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{escaped}*"'
