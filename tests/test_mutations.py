"""Writes and the cache invalidation that must follow them."""

from __future__ import annotations

import pytest

from nurserysync.errors import NotFoundError, TransportError, ValidationError
from nurserysync.services.item_cache import SingleItemCache
from nurserysync.services.mutations import MutationCoordinator
from nurserysync.services.query_engine import PaginatedQueryEngine


def _build(gateway, fallback):
    queries = PaginatedQueryEngine(gateway, fallback, page_size=20)
    items = SingleItemCache(gateway, fallback)
    return queries, items, MutationCoordinator(gateway, items, queries)


@pytest.mark.anyio("asyncio")
async def test_mark_acquired_invalidates_detail_and_lists(gateway, fallback) -> None:
    queries, items, mutations = _build(gateway, fallback)
    listing = queries.open()
    await listing.wait()
    await queries.fetch_next(listing)
    detail = items.get(101)
    await detail.wait()
    assert len(listing.pages) == 2

    updated = await mutations.mark_acquired(101)

    assert updated.acquired is True
    assert gateway.update_calls == [(101, {"bought": True})]
    assert listing.is_stale is True
    assert detail.is_stale is True

    items.observe(detail)
    queries.observe(listing)
    await detail.wait()
    await listing.wait()

    assert detail.item.acquired is True
    assert len(listing.pages) == 1
    assert listing.items[0].acquired is True
    assert [call[2] for call in gateway.page_calls] == [0, 20, 0]


@pytest.mark.anyio("asyncio")
async def test_acquired_filter_sees_mutation_after_restart(gateway, fallback) -> None:
    queries, _, mutations = _build(gateway, fallback)
    owned = queries.open({"acquired": True})
    await owned.wait()
    assert owned.items == []

    await mutations.mark_acquired(107)
    queries.observe(owned)
    await owned.wait()

    assert [item.id for item in owned.items] == [107]
    assert owned.total_count == 1


@pytest.mark.anyio("asyncio")
async def test_set_media_keeps_secondary_references(gateway, fallback) -> None:
    _, _, mutations = _build(gateway, fallback)

    updated = await mutations.set_media(102, "  https://cdn.example.com/new.jpg ")

    assert updated.media == (
        "https://cdn.example.com/new.jpg",
        "https://cdn.example.com/2-b.jpg",
    )
    assert gateway.update_calls == [
        (
            102,
            {
                "images": [
                    "https://cdn.example.com/new.jpg",
                    "https://cdn.example.com/2-b.jpg",
                ]
            },
        )
    ]


@pytest.mark.anyio("asyncio")
async def test_failed_write_leaves_caches_fresh(gateway, fallback) -> None:
    queries, items, mutations = _build(gateway, fallback)
    listing = queries.open()
    detail = items.get(103)
    await listing.wait()
    await detail.wait()
    before = detail.item
    gateway.fail_updates = True

    with pytest.raises(TransportError):
        await mutations.set_media(103, "https://cdn.example.com/other.jpg")

    assert detail.is_stale is False
    assert listing.is_stale is False
    assert detail.item == before
    assert gateway.items[103] == before


@pytest.mark.anyio("asyncio")
async def test_set_media_on_missing_item_raises(gateway, fallback) -> None:
    _, _, mutations = _build(gateway, fallback)

    with pytest.raises(NotFoundError):
        await mutations.set_media(9_999, "https://cdn.example.com/x.jpg")

    assert gateway.update_calls == []


@pytest.mark.anyio("asyncio")
async def test_mark_acquired_on_missing_item_raises(gateway, fallback) -> None:
    _, _, mutations = _build(gateway, fallback)

    with pytest.raises(NotFoundError):
        await mutations.mark_acquired(9_999)


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("reference", ["", "   ", None])
async def test_blank_media_reference_is_rejected(gateway, fallback, reference) -> None:
    _, _, mutations = _build(gateway, fallback)

    with pytest.raises(ValidationError):
        await mutations.set_media(101, reference)

    assert gateway.lookup_calls == []
