"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Two kinds of writes live here:

- whole-aggregate writes (``create``, ``save``) used while the caller
  holds the row lock inside ``transaction.atomic()``;
- single-statement conditional ``UPDATE`` calls (``mark_paid_if_pending``,
  ``store_gateway_reference``, ``revert_to_draft``) that are safe without
  any lock because the guard lives in the WHERE clause.  These bypass
  ``Model.save()`` and set ``updated_at`` explicitly.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.constants import CONFIRMABLE_STATES, OrderStatus, PaymentStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``user_id`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``quantity``, ``unit_price``
        - ``notes`` (optional)
        """
        order = Order(
            user_id=data["user_id"],
            notes=data.get("notes") or "",
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(items),
            total_amount=str(total),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _with_relations(self) -> QuerySet:
        return Order.objects.select_related("user").prefetch_related(
            "items__product", "status_history"
        )

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._with_relations().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_user(self, id: str, user_id: int) -> Optional[Order]:
        try:
            return self._with_relations().filter(id=id, user_id=user_id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str, user_id: int) -> Optional[Order]:
        """Retrieve an owned order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic()``.  The lock covers
        only the order row; ``select_related`` is not used because
        ``FOR UPDATE`` would then also lock the user row.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items__product")
                .filter(id=id, user_id=user_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_reference(
        self, reference: str, user_id: Optional[int] = None
    ) -> Optional[Order]:
        queryset = self._with_relations().filter(payment_reference=reference)
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        return queryset.first()

    def list_for_user(self, user_id: int) -> QuerySet:
        return (
            Order.objects.filter(user_id=user_id)
            .prefetch_related("items__product")
            .order_by("-created_at", "-id")
        )

    def list_awaiting_payment(
        self, updated_before: datetime, limit: int
    ) -> List[Order]:
        return list(
            Order.objects.filter(
                status=OrderStatus.AWAITING_PAYMENT,
                payment_status=PaymentStatus.PENDING,
                payment_reference__isnull=False,
                updated_at__lt=updated_before,
            ).order_by("updated_at")[:limit]
        )

    # ------------------------------------------------------------------
    # Save (IRepository contract) + outbox
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and flush its domain events to the outbox."""
        entity.save()
        event_count = self.record_events(entity)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def record_events(self, entity: Order) -> int:
        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()
        return len(events)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user_id=user_id,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    def increment_payment_attempts(self, id: UUID) -> int:
        Order.objects.filter(id=id).update(
            payment_attempts=F("payment_attempts") + 1,
            updated_at=timezone.now(),
        )
        return Order.objects.values_list("payment_attempts", flat=True).get(id=id)

    def mark_paid_if_pending(
        self, id: UUID, tracking_number: str, paid_at: datetime
    ) -> bool:
        updated = Order.objects.filter(
            id=id,
            payment_status=PaymentStatus.PENDING,
            status__in=CONFIRMABLE_STATES,
        ).update(
            payment_status=PaymentStatus.PAID,
            status=OrderStatus.PROCESSING,
            is_confirmed=True,
            tracking_number=tracking_number,
            paid_at=paid_at,
            updated_at=timezone.now(),
        )
        return updated == 1

    def store_gateway_reference(self, id: UUID, reference: str) -> bool:
        updated = Order.objects.filter(
            id=id,
            payment_status=PaymentStatus.PENDING,
        ).update(
            payment_reference=reference,
            updated_at=timezone.now(),
        )
        return updated == 1

    def revert_to_draft(self, id: UUID) -> bool:
        updated = Order.objects.filter(
            id=id,
            status=OrderStatus.AWAITING_PAYMENT,
            payment_status=PaymentStatus.PENDING,
        ).update(
            status=OrderStatus.DRAFT,
            payment_method=None,
            updated_at=timezone.now(),
        )
        return updated == 1
