"""Pytest configuration and test helpers."""

from __future__ import annotations

import asyncio
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

import pytest


# Ensure the package is importable when running tests without an editable
# install. This mirrors the runtime layout where ``nurserysync`` sits at the
# project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nurserysync.config import Settings  # noqa: E402
from nurserysync.errors import NotFoundError, TransportError  # noqa: E402
from nurserysync.models import FilterSet, Item, ItemPatch, RemotePage, SortKey  # noqa: E402
from nurserysync.services.fallback import FallbackDatasetProvider, order_items  # noqa: E402


class FakeGateway:
    """In-memory stand-in for the remote catalog store.

    Failure switches and an optional gate let tests hold requests in flight
    and decide when, and how, they complete.
    """

    def __init__(self, items: list[Item]):
        self.items: dict[int, Item] = {item.id: item for item in items}
        self.page_calls: list[tuple[FilterSet, SortKey, int, int]] = []
        self.lookup_calls: list[int] = []
        self.update_calls: list[tuple[int, dict[str, Any]]] = []
        self.fail_pages = False
        self.fail_offsets: set[int] = set()
        self.fail_lookups = False
        self.fail_updates = False
        self.gate: asyncio.Event | None = None

    def hold(self) -> asyncio.Event:
        """Block every subsequent request until the returned event is set."""

        self.gate = asyncio.Event()
        return self.gate

    async def _maybe_wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def fetch_page(
        self, filters: FilterSet, sort: SortKey, offset: int, limit: int
    ) -> RemotePage:
        self.page_calls.append((filters, sort, offset, limit))
        await self._maybe_wait()
        if self.fail_pages or offset in self.fail_offsets:
            raise TransportError("store offline", status_code=503)
        matched = [
            item
            for item in self.items.values()
            if FallbackDatasetProvider.matches(item, filters)
            and (filters.acquired is None or bool(item.acquired) == filters.acquired)
            and _contains(item.type, filters.term("type"))
            and _contains(item.wind_tolerance, filters.term("wind_tolerance"))
        ]
        ordered = order_items(matched, sort)
        return RemotePage(items=ordered[offset : offset + limit], exact_count=len(ordered))

    async def fetch_by_id(self, item_id: int) -> Item | None:
        self.lookup_calls.append(item_id)
        await self._maybe_wait()
        if self.fail_lookups:
            raise TransportError("store offline", status_code=503)
        return self.items.get(item_id)

    async def update(self, item_id: int, patch: ItemPatch | Mapping[str, Any]) -> Item:
        payload = patch.to_payload() if isinstance(patch, ItemPatch) else dict(patch)
        self.update_calls.append((item_id, payload))
        if self.fail_updates:
            raise TransportError("store offline", status_code=503)
        current = self.items.get(item_id)
        if current is None:
            raise NotFoundError(f"Plant {item_id} does not exist")
        updated = Item.model_validate({**current.model_dump(by_alias=True), **payload})
        self.items[item_id] = updated
        return updated


def _contains(value: str | None, term: str | None) -> bool:
    if term is None:
        return True
    return bool(value) and term.casefold() in value.casefold()


def make_plants(count: int) -> list[Item]:
    """Return ``count`` remote plants named ``Plant 01`` onwards."""

    plants = []
    for index in range(1, count + 1):
        plants.append(
            Item(
                id=100 + index,
                common_name=f"Plant {index:02d}",
                scientific_name=f"Planta numerus {index}",
                type="Perennial" if index % 2 else "Evergreen",
                wind_tolerance="High" if index % 3 == 0 else "Low",
                price=Decimal(index) if index % 4 else None,
                images=[f"https://cdn.example.com/{index}-a.jpg", f"https://cdn.example.com/{index}-b.jpg"],
            )
        )
    return plants


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def remote_plants() -> list[Item]:
    return make_plants(45)


@pytest.fixture
def gateway(remote_plants: list[Item]) -> FakeGateway:
    return FakeGateway(remote_plants)


@pytest.fixture
def fallback() -> FallbackDatasetProvider:
    return FallbackDatasetProvider()
