"""Pure helpers computing the new interval of a dragged or edited agenda item."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

from agenda.domain.models import ScheduledItem


def with_changes(item: ScheduledItem, changes: dict[str, Any]) -> ScheduledItem:
    """Return a re-validated copy of *item* with *changes* applied.

    ``model_copy(update=...)`` skips validation, so the copy is rebuilt
    through ``model_validate`` to keep ``start < end`` enforced.
    """
    data = item.model_dump()
    data.update(changes)
    return ScheduledItem.model_validate(data)


def move_to_slot(item: ScheduledItem, day: date, hour: int) -> ScheduledItem:
    """Drop *item* on the ``hour:00`` slot of *day*, keeping its duration."""
    start = datetime.combine(day, time(hour), tzinfo=item.start.tzinfo)
    return with_changes(item, {"start": start, "end": start + item.duration})


def shift_days(item: ScheduledItem, days: int) -> ScheduledItem:
    """Move *item* by whole days (next day is ``1``, previous day ``-1``)."""
    delta = timedelta(days=days)
    return with_changes(item, {"start": item.start + delta, "end": item.end + delta})


def reschedule(item: ScheduledItem, start: datetime, end: datetime) -> ScheduledItem:
    return with_changes(item, {"start": start, "end": end})


def resize(item: ScheduledItem, end: datetime) -> ScheduledItem:
    """Change only the end of *item*, as a calendar resize handle does."""
    return with_changes(item, {"end": end})
