"""In-process bus carrying mutation lifecycle events to their handlers."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe bus.

    A handler subscribed to a base class also receives every subclass of it,
    so ``subscribe(MutationEvent, ...)`` sees applied, committed and rolled
    back events alike. Handlers run in registration order, most specific
    event type first. A failing handler is logged and its error propagates
    to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._subscribers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: type) -> list[Handler]:
        return [
            handler
            for klass in event_type.__mro__
            for handler in self._subscribers.get(klass, ())
        ]

    def publish(self, event: Any) -> None:
        handlers = self.handlers_for(type(event))
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed on %s", handler, type(event).__name__)
                raise
