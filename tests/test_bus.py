"""Tests for the in-process event bus."""

from __future__ import annotations

import pytest

from agenda.domain.bus import EventBus
from agenda.domain.events import MutationApplied, MutationCommitted, MutationEvent, MutationRolledBack


def test_handlers_run_in_registration_order():
    bus = EventBus()
    calls = []
    bus.subscribe(MutationApplied, lambda e: calls.append("first"))
    bus.subscribe(MutationApplied, lambda e: calls.append("second"))

    bus.publish(MutationApplied(target="item:a"))

    assert calls == ["first", "second"]


def test_base_class_subscription_sees_every_lifecycle_event():
    bus = EventBus()
    seen = []
    bus.subscribe(MutationEvent, seen.append)

    bus.publish(MutationApplied(target="item:a"))
    bus.publish(MutationCommitted(target="item:a"))
    bus.publish(MutationRolledBack(target="item:b", error="boom"))

    assert [type(e) for e in seen] == [MutationApplied, MutationCommitted, MutationRolledBack]


def test_specific_handlers_run_before_base_handlers():
    bus = EventBus()
    calls = []
    bus.subscribe(MutationEvent, lambda e: calls.append("base"))
    bus.subscribe(MutationCommitted, lambda e: calls.append("specific"))

    bus.publish(MutationCommitted(target="scope:p"))

    assert calls == ["specific", "base"]


def test_unsubscribe():
    bus = EventBus()
    seen = []
    bus.subscribe(MutationApplied, seen.append)
    bus.unsubscribe(MutationApplied, seen.append)

    bus.publish(MutationApplied(target="item:a"))

    assert seen == []


def test_handler_error_propagates():
    bus = EventBus()

    def broken(event):
        raise RuntimeError("handler failed")

    bus.subscribe(MutationApplied, broken)

    with pytest.raises(RuntimeError):
        bus.publish(MutationApplied(target="item:a"))
