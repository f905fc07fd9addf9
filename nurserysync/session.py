"""Per-session cache manager tying the catalog core together."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Callable, Mapping

import httpx

from .config import Settings, get_settings
from .errors import MediaUploadError
from .models import FilterSet, Item, SortKey
from .services.debounce import SearchDebouncer
from .services.fallback import FallbackDatasetProvider
from .services.gateway import RemoteCatalogGateway
from .services.item_cache import ItemHandle, SingleItemCache
from .services.media import MediaProcessor, StorageMediaUploader
from .services.mutations import MutationCoordinator
from .services.query_engine import PaginatedQueryEngine, QueryHandle

logger = logging.getLogger(__name__)


class CatalogSession:
    """Owns every cache for one session and exposes the presentation API.

    Create one per session and pass it to consumers explicitly.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: RemoteCatalogGateway,
        *,
        fallback: FallbackDatasetProvider | None = None,
        media: MediaProcessor | None = None,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.fallback = fallback or FallbackDatasetProvider()
        self.media = media
        self.queries = PaginatedQueryEngine(
            gateway,
            self.fallback,
            page_size=settings.page_size,
            fallback_on_next_page_error=settings.fallback_on_next_page_error,
        )
        self.items = SingleItemCache(gateway, self.fallback)
        self.mutations = MutationCoordinator(gateway, self.items, self.queries)

    @classmethod
    @asynccontextmanager
    async def create(
        cls, settings: Settings | None = None
    ) -> AsyncIterator["CatalogSession"]:
        """Build a session with its HTTP clients and close them afterwards."""

        resolved = settings or get_settings()
        timeout = httpx.Timeout(resolved.request_timeout_seconds, connect=10.0)
        async with AsyncExitStack() as exit_stack:
            catalog_client: httpx.AsyncClient | None = None
            if resolved.catalog_base_url:
                catalog_client = await exit_stack.enter_async_context(
                    httpx.AsyncClient(base_url=resolved.catalog_base_url, timeout=timeout)
                )
            else:
                logger.warning(
                    "CATALOG_API_URL is not set; serving the bundled dataset only"
                )
            media_client: httpx.AsyncClient | None = None
            if resolved.media_base_url:
                media_client = await exit_stack.enter_async_context(
                    httpx.AsyncClient(base_url=resolved.media_base_url, timeout=timeout)
                )

            session = cls(
                resolved,
                RemoteCatalogGateway(resolved, catalog_client),
                media=StorageMediaUploader(resolved, media_client),
            )
            try:
                yield session
            finally:
                session.close()

    def open(
        self,
        filters: FilterSet | Mapping[str, Any] | None = None,
        sort: SortKey | Mapping[str, Any] | None = None,
    ) -> QueryHandle:
        return self.queries.open(filters, sort)

    async def fetch_next(self, handle: QueryHandle) -> None:
        await self.queries.fetch_next(handle)

    async def refetch(self, handle: QueryHandle) -> None:
        await self.queries.refetch(handle)

    def get_item(self, item_id: int) -> ItemHandle:
        return self.items.get(item_id)

    async def set_media(self, item_id: int, media_ref: str) -> Item:
        return await self.mutations.set_media(item_id, media_ref)

    async def mark_acquired(self, item_id: int) -> Item:
        return await self.mutations.mark_acquired(item_id)

    async def upload_and_set_media(
        self,
        item_id: int,
        data: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> Item:
        """Store ``data`` with the media processor, then make it the primary image.

        The item is left untouched if the upload fails.
        """

        if self.media is None:
            raise MediaUploadError("No media processor configured")
        media_ref = await self.media.upload(
            data, filename=filename, content_type=content_type
        )
        return await self.set_media(item_id, media_ref)

    def search_debouncer(
        self, on_settle: Callable[[FilterSet], Any] | None = None
    ) -> SearchDebouncer:
        return SearchDebouncer(self.settings.search_debounce_seconds, on_settle)

    def close(self) -> None:
        """Abandon every in-flight fetch owned by the session."""

        self.queries.close()
        self.items.close()
