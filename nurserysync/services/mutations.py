"""Item mutations and the cache invalidation that follows them."""

from __future__ import annotations

import logging

from ..errors import CatalogError, NotFoundError, ValidationError
from ..models import Item, ItemPatch
from .gateway import RemoteCatalogGateway
from .item_cache import SingleItemCache, validate_item_id
from .query_engine import PaginatedQueryEngine

logger = logging.getLogger(__name__)


class MutationCoordinator:
    """Runs writes against the store, then invalidates affected caches.

    A successful write marks the item's detail entry and every cached list
    query stale before returning. Failed writes touch no cache and re-raise.
    """

    def __init__(
        self,
        gateway: RemoteCatalogGateway,
        item_cache: SingleItemCache,
        query_engine: PaginatedQueryEngine,
    ) -> None:
        self._gateway = gateway
        self._items = item_cache
        self._queries = query_engine

    async def set_media(self, item_id: int, media_ref: str) -> Item:
        """Replace the primary media reference, keeping any secondary ones."""

        key = validate_item_id(item_id)
        if not isinstance(media_ref, str) or not media_ref.strip():
            raise ValidationError("Media reference must be a non-empty string")
        reference = media_ref.strip()

        current = await self._gateway.fetch_by_id(key)
        if current is None:
            raise NotFoundError(f"Plant {key} does not exist")
        media = [reference, *current.media[1:]]
        return await self._apply(key, ItemPatch(media=media), "set_media")

    async def mark_acquired(self, item_id: int) -> Item:
        """Flag the item as acquired; there is no reverse operation."""

        key = validate_item_id(item_id)
        return await self._apply(key, ItemPatch(acquired=True), "mark_acquired")

    async def _apply(self, item_id: int, patch: ItemPatch, operation: str) -> Item:
        try:
            updated = await self._gateway.update(item_id, patch)
        except CatalogError as exc:
            logger.warning("%s failed for plant %s: %s", operation, item_id, exc)
            raise

        self._items.invalidate(item_id)
        self._queries.invalidate_all()
        logger.info("%s succeeded for plant %s", operation, item_id)
        return updated
