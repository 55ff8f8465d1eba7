"""Domain events for the Orders bounded context.

Field values are kept JSON-friendly (strings and ints) so the outbox
relay can rebuild them from the stored payload.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a draft order is placed."""

    order_number: str = ""
    user_id: str = ""
    total_amount: str = ""


@dataclass(frozen=True)
class CheckoutInitiated(DomainEvent):
    """Raised when a checkout attempt moves an order to awaiting payment."""

    attempt_number: int = 0
    reference: str = ""
    payment_method: str = ""


@dataclass(frozen=True)
class PaymentConfirmed(DomainEvent):
    """Raised exactly once per order, when the payment transition applies."""

    source: str = ""
    tracking_number: str = ""
