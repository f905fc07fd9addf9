"""In-memory catalog served while the remote store is unavailable."""

from __future__ import annotations

from typing import Any, Iterable

from ..errors import ValidationError
from ..models import DataSource, FilterSet, Item, Page, SortKey
from ..sample_data import SAMPLE_PLANTS


class FallbackDatasetProvider:
    """Filters, orders and slices a fixed collection of items.

    Only the free-text search predicate is honoured; the bundled records do
    not model the remaining attributes reliably, so other filters are ignored.
    """

    def __init__(self, items: Iterable[Item] = SAMPLE_PLANTS) -> None:
        self._items: tuple[Item, ...] = tuple(items)
        self._by_id = {item.id: item for item in self._items}

    def __len__(self) -> int:
        return len(self._items)

    def list(
        self,
        filters: FilterSet,
        sort: SortKey,
        offset: int,
        limit: int,
    ) -> list[Item]:
        """Return the ``[offset, offset + limit)`` slice of matching items."""

        _validate_range(offset, limit)
        matched = self._ordered(filters, sort)
        return matched[offset : offset + limit]

    def count(self, filters: FilterSet) -> int:
        return sum(1 for item in self._items if self.matches(item, filters))

    def get_by_id(self, item_id: int) -> Item | None:
        return self._by_id.get(item_id)

    def page(
        self,
        filters: FilterSet,
        sort: SortKey,
        index: int,
        page_size: int,
    ) -> Page:
        """Return page ``index`` with an exact continuation cursor."""

        if index < 0:
            raise ValidationError("Page index must not be negative")
        offset = index * page_size
        items = self.list(filters, sort, offset, page_size)
        total = self.count(filters)
        next_cursor = index + 1 if offset + len(items) < total else None
        return Page(
            items=tuple(items),
            index=index,
            next_cursor=next_cursor,
            total_count=total,
            source=DataSource.FALLBACK,
        )

    @staticmethod
    def matches(item: Item, filters: FilterSet) -> bool:
        term = filters.term("search")
        if term is None:
            return True
        needle = term.casefold()
        for name in (item.common_name, item.scientific_name):
            if name and needle in name.casefold():
                return True
        return False

    def _ordered(self, filters: FilterSet, sort: SortKey) -> list[Item]:
        matched = [item for item in self._items if self.matches(item, filters)]
        return order_items(matched, sort)


def sort_value(item: Item, sort: SortKey) -> Any:
    """Return the comparable value for ``item`` or ``None`` when absent."""

    if sort.field == "price":
        return item.price
    if sort.field == "id":
        return item.id
    name = (item.common_name or "").strip()
    return name.casefold() or None


def order_items(items: Iterable[Item], sort: SortKey) -> list[Item]:
    """Order items by ``sort``, ties by id, absent values last either way."""

    by_id = sorted(items, key=lambda item: item.id)
    present = [item for item in by_id if sort_value(item, sort) is not None]
    absent = [item for item in by_id if sort_value(item, sort) is None]
    present.sort(key=lambda item: sort_value(item, sort), reverse=sort.descending)
    return present + absent


def _validate_range(offset: int, limit: int) -> None:
    if offset < 0:
        raise ValidationError("Offset must not be negative")
    if limit < 1:
        raise ValidationError("Limit must be at least 1")
