"""Order repository interface.

Extends ``IRepository[Order]`` with what the order workflow needs:
atomic creation with items, user-scoped look-ups, status history,
and the conditional writes that make payment confirmation and
checkout roll-back safe under concurrency.

The Service Layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``user_id`` and ``items`` (list of dicts
        with ``product_id``, ``quantity``, ``unit_price``), and optionally
        ``notes``.
        """

    @abstractmethod
    def get_for_user(self, id: str, user_id: int) -> Optional[Order]:
        """Retrieve an order only if it belongs to *user_id*."""

    @abstractmethod
    def get_for_update(self, id: str, user_id: int) -> Optional[Order]:
        """Like ``get_for_user`` but takes a row lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_by_reference(
        self, reference: str, user_id: Optional[int] = None
    ) -> Optional[Order]:
        """Retrieve an order by its current payment reference."""

    @abstractmethod
    def list_for_user(self, user_id: int) -> "QuerySet[Order]":
        """Orders of one user, newest first."""

    @abstractmethod
    def list_awaiting_payment(
        self, updated_before: datetime, limit: int
    ) -> List[Order]:
        """Orders stuck in AWAITING_PAYMENT/PENDING since *updated_before*."""

    @abstractmethod
    def record_events(self, entity: Order) -> int:
        """Write the aggregate's pending domain events to the outbox."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def increment_payment_attempts(self, id: UUID) -> int:
        """Atomically add one checkout attempt; returns the new count."""

    @abstractmethod
    def mark_paid_if_pending(
        self, id: UUID, tracking_number: str, paid_at: datetime
    ) -> bool:
        """Compare-and-swap the payment transition.

        Moves the order to (PROCESSING, PAID) only if it is still PENDING
        and in a confirmable status.  Returns whether a row changed.
        """

    @abstractmethod
    def store_gateway_reference(self, id: UUID, reference: str) -> bool:
        """Store the gateway's reference while payment is still PENDING."""

    @abstractmethod
    def revert_to_draft(self, id: UUID) -> bool:
        """Return an AWAITING_PAYMENT/PENDING order to DRAFT."""
