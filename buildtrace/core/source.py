"""Push-based build event source.

WHY: Live builds and replayed logs both deliver events by calling back
into whoever is listening. The processor should not care which of the
two is feeding it, and it must be able to detach when its session ends.

HOW: EventSource keeps an ordered list of handler callables. Producers
call ``raise_event`` (one event) or ``replay`` (an iterable). Handlers
are snapshotted under the lock before dispatch, so a handler may
unsubscribe itself while an event is being delivered.

RULES:
- Handlers are called in subscription order
- Subscribing the same handler twice registers it once
- Unsubscribing an unknown handler is a no-op
- Exceptions raised by a handler propagate to the producer
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List

from buildtrace.core.events import BuildEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[BuildEvent], None]


class EventSource:
    """Thread-safe fan-out of build events to subscribed handlers."""

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def raise_event(self, event: BuildEvent) -> None:
        """Deliver one event to every current handler."""
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(event)

    def replay(self, events: Iterable[BuildEvent]) -> int:
        """Deliver a recorded stream in order. Returns the number of events sent."""
        count = 0
        for event in events:
            self.raise_event(event)
            count += 1
        logger.debug("Replayed %d events", count)
        return count
