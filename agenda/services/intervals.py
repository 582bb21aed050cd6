"""Start-sorted container of scheduled items with overlap queries."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from datetime import date, datetime

from agenda.domain.models import ScheduledItem


class IntervalSet:
    """Scheduled items kept sorted by ``(start, end, id)``, keyed by id.

    Adding an item whose id is already present replaces the old entry.
    """

    def __init__(self, items: Iterable[ScheduledItem] = ()) -> None:
        self._by_id: dict[str, ScheduledItem] = {}
        self._keys: list[tuple[datetime, datetime, str]] = []
        for item in items:
            self.add(item)

    @staticmethod
    def _key(item: ScheduledItem) -> tuple[datetime, datetime, str]:
        return (item.start, item.end, item.id)

    def add(self, item: ScheduledItem) -> None:
        if item.id in self._by_id:
            self.remove(item.id)
        self._by_id[item.id] = item
        bisect.insort(self._keys, self._key(item))

    def remove(self, item_id: str) -> ScheduledItem | None:
        item = self._by_id.pop(item_id, None)
        if item is not None:
            key = self._key(item)
            index = bisect.bisect_left(self._keys, key)
            del self._keys[index]
        return item

    def get(self, item_id: str) -> ScheduledItem | None:
        return self._by_id.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[ScheduledItem]:
        """Iterate in start order."""
        for _, _, item_id in self._keys:
            yield self._by_id[item_id]

    def overlapping(self, start: datetime, end: datetime) -> list[ScheduledItem]:
        """Items whose ``[start, end)`` intersects the given half-open range.

        Touching boundaries (``item.end == start``) do not count.
        """
        # Items starting at or after *end* cannot overlap; stop the scan there.
        stop = bisect.bisect_left(self._keys, (end,))
        return [
            self._by_id[item_id]
            for item_start, item_end, item_id in self._keys[:stop]
            if item_start < end and start < item_end
        ]

    def on_day(self, day: date) -> list[ScheduledItem]:
        """Items covering any part of *day*, in start order."""
        return [item for item in self if day in item.covered_days()]
