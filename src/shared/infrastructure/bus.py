"""Process-local dispatch of committed domain events."""

from __future__ import annotations

from collections import defaultdict
from typing import DefaultDict, List, Type

import structlog

from shared.domain.events import DomainEvent, EventHandler

logger = structlog.get_logger(__name__)


class InMemoryEventBus:
    """Routes each event to the handlers subscribed to its exact class.

    Only the outbox relay publishes.  A handler that raises aborts the
    dispatch and the relay records the failure on the outbox row.
    """

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[Type[DomainEvent], List[EventHandler]] = (
            defaultdict(list)
        )

    def subscribe(self, event_class: Type[DomainEvent], handler: EventHandler) -> None:
        # ready() can run more than once under the test runner
        if handler not in self._subscriptions[event_class]:
            self._subscriptions[event_class].append(handler)

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[EventHandler]:
        return list(self._subscriptions.get(event_class, ()))

    def publish(self, event: DomainEvent) -> None:
        delivered = 0
        for handler in self.handlers_for(type(event)):
            handler.handle(event)
            delivered += 1
        logger.debug("event_bus.published", event_name=event.event_name, delivered=delivered)


event_bus = InMemoryEventBus()
