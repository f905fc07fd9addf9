"""Fingerprint-keyed cache of paginated catalog queries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..errors import READ_FAILURES, ValidationError
from ..fingerprint import Fingerprint, fingerprint
from ..models import DataSource, FilterSet, Item, Page, SortKey
from .fallback import FallbackDatasetProvider
from .gateway import RemoteCatalogGateway

logger = logging.getLogger(__name__)


class EntryStatus(str, Enum):
    """Lifecycle position of a cached query."""

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    DEGRADED = "degraded"
    STALE = "stale"


@dataclass(eq=False)
class QueryCacheEntry:
    """Pages fetched so far for one fingerprint.

    ``epoch`` changes whenever the page sequence is restarted from page 0;
    a fetch only applies its page if the epoch it started in is current.
    """

    fingerprint: Fingerprint
    filters: FilterSet
    sort: SortKey
    pages: list[Page] = field(default_factory=list)
    source: DataSource = DataSource.REMOTE
    has_more: bool = True
    stale: bool = False
    requested_cursor: int | None = None
    error: BaseException | None = None
    epoch: int = 0
    observers: int = 0
    task: asyncio.Task[None] | None = None

    @property
    def in_flight(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def items(self) -> list[Item]:
        return [item for page in self.pages for item in page.items]

    @property
    def total_count(self) -> int | None:
        return self.pages[0].total_count if self.pages else None

    @property
    def status(self) -> EntryStatus:
        if self.in_flight:
            return EntryStatus.LOADING
        if self.stale:
            return EntryStatus.STALE
        if not self.pages:
            return EntryStatus.EMPTY
        if self.source is DataSource.FALLBACK:
            return EntryStatus.DEGRADED
        return EntryStatus.READY


class QueryHandle:
    """Live view over a cached query, as seen by one consumer."""

    def __init__(self, engine: "PaginatedQueryEngine", entry: QueryCacheEntry):
        self._engine = engine
        self._entry = entry
        self._closed = False

    @property
    def entry(self) -> QueryCacheEntry:
        return self._entry

    @property
    def fingerprint(self) -> Fingerprint:
        return self._entry.fingerprint

    @property
    def filters(self) -> FilterSet:
        return self._entry.filters

    @property
    def sort(self) -> SortKey:
        return self._entry.sort

    @property
    def pages(self) -> tuple[Page, ...]:
        return tuple(self._entry.pages)

    @property
    def items(self) -> list[Item]:
        return self._entry.items

    @property
    def has_more(self) -> bool:
        return self._entry.has_more

    @property
    def total_count(self) -> int | None:
        return self._entry.total_count

    @property
    def is_initial_loading(self) -> bool:
        return self._entry.in_flight and not self._entry.pages

    @property
    def is_fetching_next(self) -> bool:
        entry = self._entry
        return entry.in_flight and bool(entry.pages) and bool(entry.requested_cursor)

    @property
    def is_refetching(self) -> bool:
        entry = self._entry
        return entry.in_flight and bool(entry.pages) and entry.requested_cursor == 0

    @property
    def is_error(self) -> bool:
        return self._entry.error is not None

    @property
    def error(self) -> BaseException | None:
        return self._entry.error

    @property
    def degraded(self) -> bool:
        return self._entry.source is DataSource.FALLBACK

    @property
    def is_stale(self) -> bool:
        return self._entry.stale

    @property
    def status(self) -> EntryStatus:
        return self._entry.status

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait(self) -> None:
        """Wait until the fetch currently in flight, if any, has settled."""

        task = self._entry.task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def close(self) -> None:
        """Stop observing; the last observer abandons any in-flight fetch."""

        if self._closed:
            return
        self._closed = True
        self._engine._release(self._entry)

    def snapshot(self) -> dict[str, Any]:
        """Return the presentation-facing state of the query."""

        return {
            "items": [item.to_payload() for item in self.items],
            "hasMore": self.has_more,
            "isInitialLoading": self.is_initial_loading,
            "isFetchingNext": self.is_fetching_next,
            "isError": self.is_error,
            "degraded": self.degraded,
            "totalCount": self.total_count,
        }


class PaginatedQueryEngine:
    """Owns one cache entry per fingerprint and stitches pages together.

    Remote failures on page 0 are answered from the bundled dataset and the
    entry stays degraded until it is next invalidated or refetched.
    """

    def __init__(
        self,
        gateway: RemoteCatalogGateway,
        fallback: FallbackDatasetProvider,
        *,
        page_size: int = 20,
        fallback_on_next_page_error: bool = False,
    ) -> None:
        if page_size < 1:
            raise ValidationError("Page size must be at least 1")
        self._gateway = gateway
        self._fallback = fallback
        self._page_size = page_size
        self._fallback_on_next_page_error = fallback_on_next_page_error
        self._entries: dict[Fingerprint, QueryCacheEntry] = {}

    @property
    def page_size(self) -> int:
        return self._page_size

    def entry(self, key: Fingerprint) -> QueryCacheEntry | None:
        return self._entries.get(key)

    def entries(self) -> list[QueryCacheEntry]:
        return list(self._entries.values())

    def open(
        self,
        filters: FilterSet | Mapping[str, Any] | None = None,
        sort: SortKey | Mapping[str, Any] | None = None,
    ) -> QueryHandle:
        """Return a handle for the query, starting page 0 if nothing is cached."""

        resolved_filters = FilterSet.coerce(filters)
        resolved_sort = SortKey.coerce(sort)
        key = fingerprint(resolved_filters, resolved_sort)
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryCacheEntry(key, resolved_filters, resolved_sort)
            self._entries[key] = entry
            logger.debug("Created query cache entry %s", key.short())
        entry.observers += 1
        handle = QueryHandle(self, entry)
        self._revalidate(entry)
        return handle

    def observe(self, handle: QueryHandle) -> asyncio.Task[None] | None:
        """Re-read a handle, reloading from page 0 if its entry went stale."""

        return self._revalidate(handle.entry)

    async def fetch_next(self, handle: QueryHandle) -> None:
        """Load the page after the last cached one.

        Does nothing when no more data is expected; a call made while a
        fetch is in flight waits for that fetch instead of issuing another.
        """

        task = self._request_next(handle.entry)
        if task is not None:
            await asyncio.wait({task})

    async def refetch(self, handle: QueryHandle) -> None:
        """Reload page 0, keeping the cached pages visible until it lands."""

        entry = handle.entry
        if entry.in_flight and entry.requested_cursor == 0 and not entry.stale:
            task = entry.task
        else:
            task = self._restart(entry, discard=entry.stale)
        if task is not None:
            await asyncio.wait({task})

    def invalidate_all(self) -> int:
        """Mark every cached query stale; reloads happen on next access."""

        for entry in self._entries.values():
            entry.stale = True
        if self._entries:
            logger.info("Invalidated %s cached catalog queries", len(self._entries))
        return len(self._entries)

    def close(self) -> None:
        """Abandon every in-flight fetch."""

        for entry in self._entries.values():
            if entry.in_flight:
                assert entry.task is not None
                entry.task.cancel()

    def _revalidate(self, entry: QueryCacheEntry) -> asyncio.Task[None] | None:
        if entry.stale:
            return self._restart(entry, discard=True)
        if entry.in_flight:
            return entry.task
        if not entry.pages:
            return self._schedule(entry, 0)
        return None

    def _request_next(self, entry: QueryCacheEntry) -> asyncio.Task[None] | None:
        if entry.stale:
            return self._restart(entry, discard=True)
        if entry.in_flight:
            logger.debug(
                "Coalescing fetch for %s onto page %s already in flight",
                entry.fingerprint.short(),
                entry.requested_cursor,
            )
            return entry.task
        if not entry.pages:
            return self._schedule(entry, 0)
        if not entry.has_more:
            return None
        return self._schedule(entry, len(entry.pages))

    def _restart(self, entry: QueryCacheEntry, *, discard: bool) -> asyncio.Task[None]:
        if entry.in_flight:
            assert entry.task is not None
            entry.task.cancel()
        entry.epoch += 1
        entry.stale = False
        entry.error = None
        if discard:
            entry.pages = []
            entry.has_more = True
        return self._schedule(entry, 0)

    def _schedule(self, entry: QueryCacheEntry, index: int) -> asyncio.Task[None]:
        entry.requested_cursor = index
        entry.error = None
        task = asyncio.create_task(
            self._load(entry, entry.epoch, index),
            name=f"catalog-query-{entry.fingerprint.short()}-p{index}",
        )
        entry.task = task
        task.add_done_callback(lambda done: self._settle(entry, done))
        return task

    async def _load(self, entry: QueryCacheEntry, epoch: int, index: int) -> None:
        # Page 0 always asks the remote store; later pages follow the entry.
        if index > 0 and entry.source is DataSource.FALLBACK:
            self._apply(entry, epoch, self._fallback_page(entry, index))
            return

        try:
            remote = await self._gateway.fetch_page(
                entry.filters,
                entry.sort,
                index * self._page_size,
                self._page_size,
            )
        except READ_FAILURES as exc:
            if epoch != entry.epoch:
                return
            if index == 0:
                logger.warning(
                    "Remote catalog unavailable for query %s (%s); serving bundled dataset",
                    entry.fingerprint.short(),
                    exc,
                )
                self._degrade(entry, epoch)
            elif self._fallback_on_next_page_error:
                logger.warning(
                    "Remote page %s failed for query %s (%s); converting to bundled dataset",
                    index,
                    entry.fingerprint.short(),
                    exc,
                )
                self._degrade(entry, epoch)
            else:
                logger.warning(
                    "Remote page %s failed for query %s: %s",
                    index,
                    entry.fingerprint.short(),
                    exc,
                )
                entry.error = exc
            return

        has_more = len(remote.items) == self._page_size
        page = Page(
            items=tuple(remote.items),
            index=index,
            next_cursor=index + 1 if has_more else None,
            total_count=remote.exact_count,
            source=DataSource.REMOTE,
        )
        self._apply(entry, epoch, page)

    def _degrade(self, entry: QueryCacheEntry, epoch: int) -> None:
        entry.source = DataSource.FALLBACK
        self._apply(entry, epoch, self._fallback_page(entry, 0))

    def _fallback_page(self, entry: QueryCacheEntry, index: int) -> Page:
        return self._fallback.page(entry.filters, entry.sort, index, self._page_size)

    def _apply(self, entry: QueryCacheEntry, epoch: int, page: Page) -> None:
        if epoch != entry.epoch:
            logger.debug(
                "Discarding page %s for query %s from an abandoned fetch",
                page.index,
                entry.fingerprint.short(),
            )
            return
        if page.index == 0:
            entry.pages = [page]
            entry.source = page.source
        elif page.index == len(entry.pages):
            entry.pages.append(page)
        else:
            logger.debug(
                "Ignoring out-of-sequence page %s for query %s",
                page.index,
                entry.fingerprint.short(),
            )
            return
        entry.has_more = page.has_more
        entry.error = None

    def _settle(self, entry: QueryCacheEntry, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(
            "Catalog query %s failed unexpectedly",
            entry.fingerprint.short(),
            exc_info=exc,
        )
        if entry.task is task:
            entry.error = exc

    def _release(self, entry: QueryCacheEntry) -> None:
        entry.observers = max(entry.observers - 1, 0)
        if entry.observers == 0 and entry.in_flight:
            assert entry.task is not None
            logger.debug("Abandoning fetch for unobserved query %s", entry.fingerprint.short())
            entry.task.cancel()

