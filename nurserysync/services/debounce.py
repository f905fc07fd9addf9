"""Timer-based gate that stabilises rapidly changing search input."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from ..errors import ValidationError
from ..models import FilterSet

logger = logging.getLogger(__name__)


class SearchDebouncer:
    """Publish a filter set only after input has been quiet for ``delay``.

    Every :meth:`submit` restarts the timer; when it fires the latest value
    becomes :attr:`current` and is handed to ``on_settle`` if it changed.
    """

    def __init__(
        self,
        delay: float,
        on_settle: Callable[[FilterSet], Any] | None = None,
        *,
        initial: FilterSet | None = None,
    ) -> None:
        if delay < 0:
            raise ValidationError("Debounce delay must not be negative")
        self.delay = delay
        self.current = initial or FilterSet()
        self._on_settle = on_settle
        self._pending: FilterSet | None = None
        self._timer: asyncio.Task[None] | None = None
        self.stats = {"scheduled": 0, "executed": 0, "coalesced": 0}

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, filters: FilterSet | Mapping[str, Any] | None) -> None:
        """Queue ``filters`` as the next stabilised value."""

        resolved = FilterSet.coerce(filters)
        if self._cancel_timer():
            self.stats["coalesced"] += 1
        self._pending = resolved
        self.stats["scheduled"] += 1
        if self.delay == 0:
            self._publish()
            return
        self._timer = asyncio.create_task(self._fire_later(), name="search-debounce")

    def submit_search(self, text: str | None) -> None:
        """Queue a new free-text term on top of the latest filter set."""

        base = self._pending or self.current
        self.submit(base.with_search(text))

    def flush(self) -> FilterSet:
        """Publish the pending value immediately and return the current one."""

        self._cancel_timer()
        if self._pending is not None:
            self._publish()
        return self.current

    def cancel(self) -> None:
        """Drop the pending value without publishing it."""

        self._cancel_timer()
        self._pending = None

    async def settled(self) -> FilterSet:
        """Wait for the pending value, if any, and return the current one."""

        timer = self._timer
        if timer is not None and not timer.done():
            await asyncio.wait({timer})
        return self.current

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._publish()

    def _cancel_timer(self) -> bool:
        timer = self._timer
        self._timer = None
        if timer is None or timer.done():
            return False
        timer.cancel()
        return True

    def _publish(self) -> None:
        value = self._pending
        self._pending = None
        if value is None:
            return
        self.stats["executed"] += 1
        if value == self.current:
            return
        self.current = value
        logger.debug("Search filters settled: %s", value.model_dump(exclude_none=True))
        if self._on_settle is not None:
            self._on_settle(value)
