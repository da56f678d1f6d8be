"""In-process pub/sub used by the outbox worker to fan events out to listeners."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, DefaultDict, List

from gameia.core.events.event_models import CoreEvent

EventHandler = Callable[[CoreEvent], None]
ANY_EVENT = "*"


class EventBus:
    """
    Handlers run synchronously in subscription order. A handler error
    propagates to the publisher, so the outbox row is retried.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(event_type, ()):
            self._handlers[event_type].remove(handler)

    def publish(self, event: CoreEvent) -> int:
        handlers = [*self._handlers.get(event.event_type, ()), *self._handlers.get(ANY_EVENT, ())]
        for handler in handlers:
            handler(event)
        return len(handlers)


event_bus = EventBus()
