"""Tests for the conflict-detection service."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from agenda.domain.models import ScheduledItem
from agenda.services.conflicts import conflict_pairs, conflicts_with, find_conflicts
from agenda.services.intervals import IntervalSet

_DAY = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _at(hour: float, day_offset: int = 0) -> datetime:
    return _DAY + timedelta(days=day_offset, minutes=int(hour * 60))


def _make_item(item_id: str, start: datetime, end: datetime, all_day: bool = False) -> ScheduledItem:
    return ScheduledItem(id=item_id, title=item_id, start=start, end=end, all_day=all_day)


def _all_day(item_id: str, day_offset: int = 0, days: int = 1) -> ScheduledItem:
    return _make_item(item_id, _at(0, day_offset), _at(0, day_offset + days), all_day=True)


def test_no_overlap():
    """Items that don't overlap should not be returned as conflicts."""
    items = [
        _make_item("a", _at(8), _at(9)),
        _make_item("b", _at(10), _at(11)),
    ]
    assert find_conflicts(items) == set()


def test_partial_overlap():
    """Items that partially overlap both appear in the conflict set."""
    items = [
        _make_item("a", _at(9), _at(10.5)),
        _make_item("b", _at(10), _at(11)),
    ]
    assert find_conflicts(items) == {"a", "b"}


def test_exact_boundary_no_conflict():
    """When a.end == b.start, there is no conflict (boundary touch)."""
    items = [
        _make_item("a", _at(9), _at(10)),
        _make_item("b", _at(10), _at(11)),
    ]
    assert find_conflicts(items) == set()


def test_contained_item_conflicts():
    items = [
        _make_item("outer", _at(9), _at(12)),
        _make_item("inner", _at(10), _at(11)),
        _make_item("later", _at(12), _at(13)),
    ]
    assert find_conflicts(items) == {"outer", "inner"}


def test_identical_intervals_conflict():
    items = [
        _make_item("a", _at(9), _at(10)),
        _make_item("b", _at(9), _at(10)),
    ]
    assert find_conflicts(items) == {"a", "b"}


def test_all_day_items_on_same_day_conflict():
    items = [_all_day("holiday"), _all_day("offsite")]
    assert find_conflicts(items) == {"holiday", "offsite"}


def test_all_day_items_on_consecutive_days_do_not_conflict():
    items = [_all_day("mon"), _all_day("tue", day_offset=1)]
    assert find_conflicts(items) == set()


def test_multi_day_all_day_item_conflicts_with_later_day():
    items = [_all_day("trip", days=3), _all_day("review", day_offset=2)]
    assert find_conflicts(items) == {"trip", "review"}


def test_all_day_item_overlapping_timed_item():
    items = [_all_day("holiday"), _make_item("standup", _at(9), _at(9.25))]
    assert find_conflicts(items) == {"holiday", "standup"}


def test_accepts_interval_set():
    intervals = IntervalSet(
        [
            _make_item("a", _at(9), _at(11)),
            _make_item("b", _at(10), _at(12)),
            _make_item("c", _at(13), _at(14)),
        ]
    )
    assert find_conflicts(intervals) == {"a", "b"}


def test_result_independent_of_input_order():
    items = [
        _make_item("a", _at(8), _at(10)),
        _make_item("b", _at(9), _at(9.5)),
        _make_item("c", _at(10), _at(11)),
        _make_item("d", _at(10.5), _at(12)),
        _all_day("e"),
        _all_day("f"),
    ]
    expected = find_conflicts(items)

    rng = random.Random(7)
    for _ in range(10):
        shuffled = items[:]
        rng.shuffle(shuffled)
        assert find_conflicts(shuffled) == expected


def test_sweep_matches_pairwise_scan():
    """The sweep result equals the union of every conflicting pair."""
    rng = random.Random(42)
    items = []
    for index in range(40):
        start = rng.randint(0, 40) / 2
        length = rng.randint(1, 6) / 2
        items.append(_make_item(f"i{index}", _at(start), _at(start + length)))

    from_pairs = {item_id for pair in conflict_pairs(items) for item_id in pair}
    assert find_conflicts(items) == from_pairs


def test_conflict_pairs_are_sorted():
    items = [
        _make_item("b", _at(9), _at(11)),
        _make_item("a", _at(10), _at(12)),
        _make_item("c", _at(10.5), _at(10.75)),
    ]
    assert conflict_pairs(items) == [("a", "b"), ("a", "c"), ("b", "c")]


def test_conflicts_with_is_symmetric():
    a = _make_item("a", _at(9), _at(10.5))
    b = _make_item("b", _at(10), _at(11))
    c = _make_item("c", _at(11), _at(12))
    items = [a, b, c]

    assert [item.id for item in conflicts_with(a, items)] == ["b"]
    assert [item.id for item in conflicts_with(b, items)] == ["a"]
    assert conflicts_with(c, items) == []
