"""Synchronous in-process bus for timetable domain events."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from uams.core.logging_config import get_logger

logger = get_logger(__name__)


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers run synchronously in registration order; a failing handler
    propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        handlers = self._subscribers.get(type(event), [])
        logger.debug("Publishing %s to %d handlers", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
