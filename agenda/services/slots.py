"""Service for building the hour-by-hour slot table of an agenda day."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from dateutil import parser as date_parser

from agenda.domain.errors import InvalidRange
from agenda.domain.models import BusinessHours, ScheduledItem, Slot

logger = logging.getLogger(__name__)

DEFAULT_HOURS = BusinessHours()
EXTENDED_HOURS = BusinessHours.extended()


def build_slots(
    day: date,
    start_hour: int = DEFAULT_HOURS.start_hour,
    end_hour: int = DEFAULT_HOURS.end_hour,
    granularity_minutes: int = DEFAULT_HOURS.granularity_minutes,
    items: Iterable[ScheduledItem] = (),
    *,
    collapse_covered: bool = False,
    tz: tzinfo = timezone.utc,
) -> list[Slot]:
    """Return one slot per *granularity_minutes* from ``start_hour:00`` to ``end_hour:00``.

    Both boundary hours are included, so the default 08:00-18:00 hourly table
    has 11 slots. Timed items starting on *day* are bucketed by start hour:
    the first slot of that hour records the earliest of them as its
    occupant, and the rest are left for the conflict view to surface.
    All-day items never occupy a slot.

    With *collapse_covered*, empty slots whose hour is covered by the tail of
    an item that started earlier are left out.
    """
    _validate(start_hour, end_hour, granularity_minutes)

    day_items = [
        item for item in items if not item.all_day and item.start.date() == day
    ]
    occupants: dict[int, ScheduledItem] = {}
    for item in sorted(day_items, key=lambda item: (item.start, item.end)):
        occupants.setdefault(item.start.hour, item)

    covered = _covered_hours(day_items, day) if collapse_covered else set()

    slots: list[Slot] = []
    seen_hours: set[int] = set()
    for offset in range(start_hour * 60, end_hour * 60 + 1, granularity_minutes):
        hour, minute = divmod(offset, 60)
        occupant = None
        if hour not in seen_hours:
            occupant = occupants.get(hour)
            seen_hours.add(hour)
        if occupant is None and hour in covered:
            continue
        slots.append(
            Slot(
                label=format_slot_label(hour, minute),
                hour=hour,
                minute=minute,
                start=datetime.combine(day, time(hour, minute), tzinfo=tz),
                occupant=occupant,
            )
        )
    return slots


def build_slots_for(
    day: date,
    items: Iterable[ScheduledItem] = (),
    hours: BusinessHours | None = None,
    *,
    extended: bool = False,
    collapse_covered: bool = False,
) -> list[Slot]:
    """Build slots from a ``BusinessHours`` config, falling back to the defaults."""
    if hours is None:
        hours = EXTENDED_HOURS if extended else DEFAULT_HOURS
    return build_slots(
        day,
        hours.start_hour,
        hours.end_hour,
        hours.granularity_minutes,
        items,
        collapse_covered=collapse_covered,
    )


def business_hours_from_settings(
    start_of_day_time: str | None,
    end_of_day_time: str | None,
    granularity_minutes: int = 60,
    *,
    extended: bool = False,
) -> BusinessHours:
    """Read the business-hours window from project settings strings.

    Accepts ``"08:00"`` as well as ``"8:00 AM"``. A missing value keeps the
    matching bound of the default (or extended) window.
    """
    fallback = EXTENDED_HOURS if extended else DEFAULT_HOURS
    start_hour = _parse_hour(start_of_day_time, fallback.start_hour)
    end_hour = _parse_hour(end_of_day_time, fallback.end_hour)
    _validate(start_hour, end_hour, granularity_minutes)
    return BusinessHours(
        start_hour=start_hour,
        end_hour=end_hour,
        granularity_minutes=granularity_minutes,
    )


def format_slot_label(hour: int, minute: int = 0) -> str:
    display_hour = hour % 12 or 12
    suffix = "PM" if hour >= 12 else "AM"
    return f"{display_hour}:{minute:02d} {suffix}"


def next_available_start(
    day: date,
    items: Iterable[ScheduledItem],
    requested: time,
    *,
    tz: tzinfo = timezone.utc,
) -> datetime:
    """Suggest a start time for a new item on *day*.

    Returns the end of the latest-starting timed item of the day, or
    *requested* on that day when the day is still empty.
    """
    day_items = sorted(
        (item for item in items if not item.all_day and item.start.date() == day),
        key=lambda item: item.start,
    )
    if not day_items:
        return datetime.combine(day, requested, tzinfo=tz)
    return day_items[-1].end


def default_end(start: datetime) -> datetime:
    """One hour after *start*, clamped to 23:59 of the same day."""
    end = start + timedelta(hours=1)
    if end.date() != start.date():
        return start.replace(hour=23, minute=59, second=0, microsecond=0)
    return end


def _validate(start_hour: int, end_hour: int, granularity_minutes: int) -> None:
    if not (0 <= start_hour <= 23 and 0 <= end_hour <= 23):
        raise InvalidRange(f"hours must be within 0..23, got {start_hour}..{end_hour}")
    if end_hour <= start_hour:
        raise InvalidRange(f"end hour {end_hour} must be after start hour {start_hour}")
    if granularity_minutes <= 0:
        raise InvalidRange(f"granularity must be positive, got {granularity_minutes}")


def _parse_hour(value: str | None, fallback: int) -> int:
    if not value:
        return fallback
    try:
        return date_parser.parse(value).hour
    except (ValueError, OverflowError) as exc:
        logger.warning("Unreadable time of day %r", value)
        raise InvalidRange(f"cannot read time of day {value!r}") from exc


def _covered_hours(items: Iterable[ScheduledItem], day: date) -> set[int]:
    covered: set[int] = set()
    for item in items:
        first = item.start.hour
        if item.end.date() != day:
            last = 23
        else:
            last = item.end.hour if item.end.minute else item.end.hour - 1
        covered.update(range(first + 1, last + 1))
    return covered
