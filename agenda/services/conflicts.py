"""Service for detecting scheduling conflicts between agenda items."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from itertools import combinations

from agenda.domain.models import ScheduledItem

_END = 0
_START = 1


def find_conflicts(items: Iterable[ScheduledItem]) -> set[str]:
    """Return the ids of every item that overlaps at least one other item.

    Overlap rule: ``a.start < b.end and b.start < a.end``. Exact boundary
    touches (``end == start``) are NOT conflicts. Two all-day items also
    conflict when they cover a common calendar day.

    Runs as a sweep over the sorted interval endpoints; ends are processed
    before starts at the same instant so touching intervals stay apart.
    """
    items = list(items)
    conflicting: set[str] = set()

    endpoints: list[tuple[datetime, int, str]] = []
    for item in items:
        endpoints.append((item.start, _START, item.id))
        endpoints.append((item.end, _END, item.id))
    endpoints.sort()

    active: dict[str, int] = {}
    for _, kind, item_id in endpoints:
        if kind == _END:
            active[item_id] -= 1
            if not active[item_id]:
                del active[item_id]
            continue
        others = [other for other in active if other != item_id]
        if others:
            conflicting.add(item_id)
            conflicting.update(others)
        active[item_id] = active.get(item_id, 0) + 1

    for ids in _all_day_buckets(items).values():
        if len(ids) > 1:
            conflicting.update(ids)

    return conflicting


def conflict_pairs(items: Iterable[ScheduledItem]) -> list[tuple[str, str]]:
    """Every conflicting pair of ids, each pair sorted, the list sorted."""
    pairs = {
        tuple(sorted((a.id, b.id)))
        for a, b in combinations(list(items), 2)
        if a.id != b.id and _conflict(a, b)
    }
    return sorted(pairs)


def conflicts_with(item: ScheduledItem, items: Iterable[ScheduledItem]) -> list[ScheduledItem]:
    """Return the items other than *item* that it conflicts with."""
    return [other for other in items if other.id != item.id and _conflict(item, other)]


def _conflict(a: ScheduledItem, b: ScheduledItem) -> bool:
    if a.start < b.end and b.start < a.end:
        return True
    return a.all_day and b.all_day and bool(set(a.covered_days()) & set(b.covered_days()))


def _all_day_buckets(items: Iterable[ScheduledItem]) -> dict[date, set[str]]:
    buckets: dict[date, set[str]] = defaultdict(set)
    for item in items:
        if item.all_day:
            for day in item.covered_days():
                buckets[day].add(item.id)
    return buckets
