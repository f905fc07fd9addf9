"""Search input stabilisation."""

from __future__ import annotations

import asyncio

import pytest

from nurserysync.errors import ValidationError
from nurserysync.models import FilterSet
from nurserysync.services.debounce import SearchDebouncer


@pytest.mark.anyio("asyncio")
async def test_rapid_input_publishes_only_last_value() -> None:
    published: list[FilterSet] = []
    debouncer = SearchDebouncer(0.02, published.append)

    for text in ("e", "el", "eld", "elder"):
        debouncer.submit_search(text)
        await asyncio.sleep(0)

    assert debouncer.pending is True
    assert debouncer.current == FilterSet()

    settled = await debouncer.settled()

    assert settled.search == "elder"
    assert [value.search for value in published] == ["elder"]
    assert debouncer.stats == {"scheduled": 4, "executed": 1, "coalesced": 3}
    assert debouncer.pending is False


@pytest.mark.anyio("asyncio")
async def test_submit_search_keeps_other_filters() -> None:
    debouncer = SearchDebouncer(0.01, initial=FilterSet(type="Shrub"))

    debouncer.submit_search("lemon")
    settled = await debouncer.settled()

    assert settled == FilterSet(type="Shrub", search="lemon")


@pytest.mark.anyio("asyncio")
async def test_flush_publishes_immediately() -> None:
    published: list[FilterSet] = []
    debouncer = SearchDebouncer(10, published.append)

    debouncer.submit({"search": "fescue"})
    current = debouncer.flush()

    assert current.search == "fescue"
    assert published == [current]
    assert debouncer.pending is False


@pytest.mark.anyio("asyncio")
async def test_cancel_discards_pending_value() -> None:
    published: list[FilterSet] = []
    debouncer = SearchDebouncer(0.01, published.append)

    debouncer.submit({"search": "juniper"})
    debouncer.cancel()
    await asyncio.sleep(0.03)

    assert published == []
    assert debouncer.current == FilterSet()
    assert debouncer.pending is False


@pytest.mark.anyio("asyncio")
async def test_zero_delay_publishes_synchronously() -> None:
    published: list[FilterSet] = []
    debouncer = SearchDebouncer(0, published.append)

    debouncer.submit({"search": "garlic"})

    assert debouncer.current.search == "garlic"
    assert len(published) == 1


@pytest.mark.anyio("asyncio")
async def test_unchanged_value_does_not_notify() -> None:
    published: list[FilterSet] = []
    debouncer = SearchDebouncer(0, published.append, initial=FilterSet(search="owl"))

    debouncer.submit({"search": "owl"})

    assert published == []
    assert debouncer.stats["executed"] == 1


def test_negative_delay_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SearchDebouncer(-0.5)


@pytest.mark.anyio("asyncio")
async def test_invalid_filters_are_rejected_before_scheduling() -> None:
    debouncer = SearchDebouncer(0.01)

    with pytest.raises(ValidationError):
        debouncer.submit({"colour": "red"})

    assert debouncer.stats["scheduled"] == 0
