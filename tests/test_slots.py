"""Tests for slot generation bound to business hours."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from agenda.domain.errors import InvalidRange
from agenda.domain.models import BusinessHours, ScheduledItem
from agenda.services.slots import (
    build_slots,
    build_slots_for,
    business_hours_from_settings,
    default_end,
    format_slot_label,
    next_available_start,
)

_DAY = date(2025, 5, 12)


def _make_item(item_id: str, start: tuple[int, int], end: tuple[int, int], **overrides) -> ScheduledItem:
    return ScheduledItem(
        id=item_id,
        start=datetime.combine(_DAY, time(*start)),
        end=datetime.combine(_DAY, time(*end)),
        **overrides,
    )


# ---------------------------------------------------------------------------
# Slot table
# ---------------------------------------------------------------------------


def test_default_window_has_eleven_hourly_slots():
    """08:00-18:00 inclusive of both ends gives 11 slots."""
    slots = build_slots(_DAY)

    assert len(slots) == 11
    assert slots[0].label == "8:00 AM"
    assert slots[4].label == "12:00 PM"
    assert slots[-1].label == "6:00 PM"
    assert slots[0].start == datetime(2025, 5, 12, 8, 0, tzinfo=timezone.utc)


def test_half_hour_granularity():
    slots = build_slots(_DAY, 9, 11, 30)

    assert [(s.hour, s.minute) for s in slots] == [(9, 0), (9, 30), (10, 0), (10, 30), (11, 0)]
    assert slots[1].label == "9:30 AM"


def test_item_occupies_its_start_hour():
    standup = _make_item("standup", (9, 15), (9, 45))

    slots = build_slots(_DAY, items=[standup])

    by_hour = {slot.hour: slot for slot in slots}
    assert by_hour[9].occupant.id == "standup"
    assert all(slot.occupant is None for slot in slots if slot.hour != 9)


def test_earliest_item_wins_the_hour():
    later = _make_item("later", (10, 30), (11, 0))
    earlier = _make_item("earlier", (10, 0), (10, 30))

    slots = build_slots(_DAY, items=[later, earlier])

    assert {s.hour: s for s in slots}[10].occupant.id == "earlier"


def test_equal_start_prefers_shorter_item():
    long = _make_item("long", (10, 0), (12, 0))
    short = _make_item("short", (10, 0), (10, 30))

    slots = build_slots(_DAY, items=[long, short])

    assert {s.hour: s for s in slots}[10].occupant.id == "short"


def test_all_day_and_other_day_items_are_ignored():
    holiday = ScheduledItem(
        id="holiday",
        start=datetime(2025, 5, 12),
        end=datetime(2025, 5, 13),
        all_day=True,
    )
    tomorrow = ScheduledItem(
        id="tomorrow",
        start=datetime(2025, 5, 13, 9),
        end=datetime(2025, 5, 13, 10),
    )

    slots = build_slots(_DAY, items=[holiday, tomorrow])

    assert all(slot.occupant is None for slot in slots)


def test_item_outside_window_is_not_placed():
    early = _make_item("early", (6, 0), (7, 0))

    slots = build_slots(_DAY, items=[early])

    assert all(slot.occupant is None for slot in slots)


def test_occupant_placed_on_first_sub_hour_slot():
    item = _make_item("review", (9, 45), (10, 15))

    slots = build_slots(_DAY, 9, 10, 15, items=[item])

    assert slots[0].occupant.id == "review"
    assert all(slot.occupant is None for slot in slots[1:])


@pytest.mark.parametrize(
    ("start", "end", "granularity"),
    [(18, 8, 60), (9, 9, 60), (8, 24, 60), (-1, 10, 60), (8, 18, 0)],
)
def test_invalid_window_raises(start, end, granularity):
    with pytest.raises(InvalidRange):
        build_slots(_DAY, start, end, granularity)


def test_collapse_skips_hours_covered_by_earlier_item():
    workshop = _make_item("workshop", (9, 0), (12, 0))
    lunch = _make_item("lunch", (12, 0), (13, 0))

    slots = build_slots(_DAY, items=[workshop, lunch], collapse_covered=True)

    hours = [slot.hour for slot in slots]
    assert 10 not in hours
    assert 11 not in hours
    assert 9 in hours
    assert 12 in hours


def test_collapse_keeps_covered_hour_with_its_own_occupant():
    workshop = _make_item("workshop", (9, 0), (12, 0))
    overlap = _make_item("overlap", (10, 30), (11, 0))

    slots = build_slots(_DAY, items=[workshop, overlap], collapse_covered=True)

    by_hour = {slot.hour: slot for slot in slots}
    assert by_hour[10].occupant.id == "overlap"
    assert 11 not in by_hour


# ---------------------------------------------------------------------------
# Business hours configuration
# ---------------------------------------------------------------------------


def test_build_slots_for_defaults_and_extended():
    assert len(build_slots_for(_DAY)) == 11

    extended = build_slots_for(_DAY, extended=True)
    assert extended[0].label == "6:00 AM"
    assert extended[-1].label == "10:00 PM"
    assert len(extended) == 17


def test_build_slots_for_custom_hours():
    slots = build_slots_for(_DAY, hours=BusinessHours(start_hour=10, end_hour=12))

    assert [slot.label for slot in slots] == ["10:00 AM", "11:00 AM", "12:00 PM"]


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        ("08:00", "18:00", (8, 18)),
        ("9:00 AM", "5:00 PM", (9, 17)),
        (None, "20:00", (8, 20)),
        ("07:30", None, (7, 18)),
    ],
)
def test_business_hours_from_settings(start, end, expected):
    hours = business_hours_from_settings(start, end)

    assert (hours.start_hour, hours.end_hour) == expected


def test_business_hours_from_settings_extended_fallback():
    hours = business_hours_from_settings(None, None, extended=True)

    assert (hours.start_hour, hours.end_hour) == (6, 22)


def test_unreadable_settings_raise_invalid_range():
    with pytest.raises(InvalidRange):
        business_hours_from_settings("xyz", "18:00")


@pytest.mark.parametrize(
    ("hour", "minute", "label"),
    [(0, 0, "12:00 AM"), (9, 30, "9:30 AM"), (12, 0, "12:00 PM"), (23, 0, "11:00 PM")],
)
def test_format_slot_label(hour, minute, label):
    assert format_slot_label(hour, minute) == label


# ---------------------------------------------------------------------------
# New item suggestions
# ---------------------------------------------------------------------------


def test_next_available_start_on_empty_day():
    assert next_available_start(_DAY, [], time(9, 0)) == datetime(2025, 5, 12, 9, 0, tzinfo=timezone.utc)


def test_next_available_start_follows_last_item():
    items = [
        _make_item("first", (8, 0), (9, 0)),
        _make_item("last", (14, 0), (15, 30)),
    ]

    assert next_available_start(_DAY, items, time(9, 0)) == datetime(2025, 5, 12, 15, 30, tzinfo=timezone.utc)


def test_default_end_is_one_hour_later():
    assert default_end(datetime(2025, 5, 12, 10, 0)) == datetime(2025, 5, 12, 11, 0)


def test_default_end_clamped_to_end_of_day():
    assert default_end(datetime(2025, 5, 12, 23, 30)) == datetime(2025, 5, 12, 23, 59)
