"""Per-identifier cache of catalog item details."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ..errors import READ_FAILURES, ValidationError
from ..models import DataSource, Item
from .fallback import FallbackDatasetProvider
from .gateway import RemoteCatalogGateway

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class DetailCacheEntry:
    """Last known value for one item identifier."""

    item_id: int
    value: Item | None = None
    source: DataSource = DataSource.REMOTE
    loaded: bool = False
    not_found: bool = False
    stale: bool = False
    error: BaseException | None = None
    observers: int = 0
    task: asyncio.Task[None] | None = None

    @property
    def in_flight(self) -> bool:
        return self.task is not None and not self.task.done()


class ItemHandle:
    """Live view over one cached item."""

    def __init__(self, cache: "SingleItemCache", entry: DetailCacheEntry):
        self._cache = cache
        self._entry = entry
        self._closed = False

    @property
    def item_id(self) -> int:
        return self._entry.item_id

    @property
    def item(self) -> Item | None:
        return self._entry.value

    @property
    def is_loading(self) -> bool:
        return self._entry.in_flight and not self._entry.loaded

    @property
    def is_fetching(self) -> bool:
        return self._entry.in_flight

    @property
    def is_error(self) -> bool:
        return self._entry.error is not None

    @property
    def not_found(self) -> bool:
        return self._entry.loaded and self._entry.not_found

    @property
    def degraded(self) -> bool:
        return self._entry.source is DataSource.FALLBACK

    @property
    def is_stale(self) -> bool:
        return self._entry.stale

    async def wait(self) -> None:
        """Wait until the fetch currently in flight, if any, has settled."""

        task = self._entry.task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cache._release(self._entry)

    def snapshot(self) -> dict[str, Any]:
        value = self.item
        return {
            "item": value.to_payload() if value is not None else None,
            "isLoading": self.is_loading,
            "isError": self.is_error,
            "notFound": self.not_found,
            "degraded": self.degraded,
        }


class SingleItemCache:
    """One entry per item identifier, refetched lazily after invalidation.

    A fetch that started before an invalidation still stores its result when
    it lands, but the entry stays stale so the next read fetches again.
    """

    def __init__(
        self, gateway: RemoteCatalogGateway, fallback: FallbackDatasetProvider
    ) -> None:
        self._gateway = gateway
        self._fallback = fallback
        self._entries: dict[int, DetailCacheEntry] = {}

    def entry(self, item_id: int) -> DetailCacheEntry | None:
        return self._entries.get(item_id)

    def get(self, item_id: int) -> ItemHandle:
        """Return a handle for ``item_id``, fetching it if not fresh in cache."""

        key = validate_item_id(item_id)
        entry = self._entries.get(key)
        if entry is None:
            entry = DetailCacheEntry(key)
            self._entries[key] = entry
        entry.observers += 1
        self._ensure(entry)
        return ItemHandle(self, entry)

    def observe(self, handle: ItemHandle) -> asyncio.Task[None] | None:
        """Re-read a handle, refetching if its entry went stale."""

        return self._ensure(self._entries[handle.item_id])

    def invalidate(self, item_id: int) -> bool:
        """Mark the entry for ``item_id`` stale; returns whether one existed."""

        entry = self._entries.get(item_id)
        if entry is None:
            return False
        entry.stale = True
        logger.debug("Invalidated cached plant %s", item_id)
        return True

    def close(self) -> None:
        for entry in self._entries.values():
            if entry.in_flight:
                assert entry.task is not None
                entry.task.cancel()

    def _ensure(self, entry: DetailCacheEntry) -> asyncio.Task[None] | None:
        if entry.in_flight:
            if not entry.stale:
                return entry.task
            # Run a fresh fetch once the one started before invalidation lands.
            return self._schedule(entry, after=entry.task)
        if entry.loaded and not entry.stale:
            return None
        return self._schedule(entry)

    def _schedule(
        self,
        entry: DetailCacheEntry,
        *,
        after: asyncio.Task[None] | None = None,
    ) -> asyncio.Task[None]:
        entry.stale = False
        entry.error = None
        task = asyncio.create_task(
            self._load(entry, after),
            name=f"catalog-item-{entry.item_id}",
        )
        entry.task = task
        task.add_done_callback(lambda done: self._settle(entry, done))
        return task

    async def _load(
        self, entry: DetailCacheEntry, after: asyncio.Task[None] | None
    ) -> None:
        if after is not None and not after.done():
            try:
                await asyncio.wait({after})
            except asyncio.CancelledError:
                after.cancel()
                raise

        try:
            item = await self._gateway.fetch_by_id(entry.item_id)
        except READ_FAILURES as exc:
            logger.warning(
                "Remote lookup for plant %s failed (%s); using bundled dataset",
                entry.item_id,
                exc,
            )
            item = self._fallback.get_by_id(entry.item_id)
            source = DataSource.FALLBACK
        else:
            source = DataSource.REMOTE

        if entry.task is not asyncio.current_task():
            # Superseded by a lookup chained after an invalidation.
            return
        entry.value = item
        entry.source = source
        entry.not_found = item is None
        entry.loaded = True
        if item is None:
            logger.info("Plant %s not found", entry.item_id)

    def _settle(self, entry: DetailCacheEntry, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Lookup for plant %s failed unexpectedly", entry.item_id, exc_info=exc)
        if entry.task is task:
            entry.error = exc

    def _release(self, entry: DetailCacheEntry) -> None:
        entry.observers = max(entry.observers - 1, 0)
        if entry.observers == 0 and entry.in_flight:
            assert entry.task is not None
            logger.debug("Abandoning lookup for unobserved plant %s", entry.item_id)
            entry.task.cancel()
            entry.stale = True


def validate_item_id(item_id: object) -> int:
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        raise ValidationError("Plant identifiers must be integers")
    if item_id < 0:
        raise ValidationError("Plant identifiers must not be negative")
    return item_id
