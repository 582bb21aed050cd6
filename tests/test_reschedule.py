"""Tests for the pure time-mutation helpers used by drag, drop and resize."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agenda.domain.models import CourseDetails, ScheduledItem
from agenda.services.reschedule import move_to_slot, reschedule, resize, shift_days, with_changes

_START = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)


def _make_item(**overrides) -> ScheduledItem:
    defaults = dict(
        id="lecture",
        title="Lecture",
        start=_START,
        end=_START + timedelta(minutes=90),
        color="#3366ff",
        details=CourseDetails(course_id="c-1", module_ids=["m-1"]),
    )
    defaults.update(overrides)
    return ScheduledItem(**defaults)


def test_move_to_slot_keeps_duration():
    item = _make_item()

    moved = move_to_slot(item, date(2025, 6, 4), 14)

    assert moved.start == datetime(2025, 6, 4, 14, 0, tzinfo=timezone.utc)
    assert moved.duration == timedelta(minutes=90)
    assert moved.id == item.id
    assert moved.details == item.details


def test_move_to_slot_leaves_original_untouched():
    item = _make_item()

    move_to_slot(item, date(2025, 6, 4), 14)

    assert item.start == _START


@pytest.mark.parametrize("days", [1, -1, 7])
def test_shift_days(days):
    item = _make_item()

    shifted = shift_days(item, days)

    assert shifted.start == _START + timedelta(days=days)
    assert shifted.duration == item.duration


def test_reschedule_sets_both_ends():
    item = _make_item()
    start = datetime(2025, 6, 3, 8, tzinfo=timezone.utc)

    result = reschedule(item, start, start + timedelta(hours=3))

    assert result.duration == timedelta(hours=3)


def test_resize_changes_only_end():
    item = _make_item()

    resized = resize(item, _START + timedelta(hours=2))

    assert resized.start == _START
    assert resized.duration == timedelta(hours=2)


def test_resize_before_start_is_rejected():
    with pytest.raises(ValidationError):
        resize(_make_item(), _START)


def test_with_changes_keeps_pass_through_fields():
    item = _make_item(room="B-12")

    updated = with_changes(item, {"color": "#ff0000"})

    assert updated.color == "#ff0000"
    assert updated.to_record()["room"] == "B-12"
