"""Domain event primitives shared by the storefront modules.

Events are frozen dataclasses.  Every concrete subclass registers
itself by class name so an event persisted in the outbox can be
rebuilt from its JSON payload before it is published on the bus.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Dict, Protocol, Type
from uuid import UUID, uuid4


class UnknownEventType(LookupError):
    """An outbox payload names an event class that is not registered."""


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable)."""

    registry: ClassVar[Dict[str, Type["DomainEvent"]]] = {}

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        DomainEvent.registry[cls.__name__] = cls

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)

    # ------------------------------------------------------------------
    # Serialization (outbox)
    # ------------------------------------------------------------------

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe representation of the event."""
        return {
            key: _normalize_for_json(value)
            for key, value in dataclasses.asdict(self).items()
        }

    @classmethod
    def from_payload(cls, event_name: str, payload: Dict[str, Any]) -> "DomainEvent":
        """Rebuild a registered event from a payload produced by ``to_payload``."""
        event_cls = cls.registry.get(event_name)
        if event_cls is None:
            raise UnknownEventType(event_name)

        init_fields = {f.name for f in dataclasses.fields(event_cls) if f.init}
        kwargs = {k: v for k, v in payload.items() if k in init_fields}
        kwargs["aggregate_id"] = UUID(str(payload["aggregate_id"]))
        if "event_id" in payload:
            kwargs["event_id"] = UUID(str(payload["event_id"]))
        if "occurred_on" in payload:
            kwargs["occurred_on"] = datetime.fromisoformat(payload["occurred_on"])
        return event_cls(**kwargs)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value


class EventHandler(Protocol):
    """Anything with a ``handle(event)`` method can subscribe to the bus."""

    def handle(self, event: DomainEvent) -> None: ...
