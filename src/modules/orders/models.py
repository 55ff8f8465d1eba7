"""Order, OrderItem and OrderStatusHistory models.

Business rules implemented:
- Each status change generates a history record.
- Order number auto-generated as a human-readable identifier.
- ``payment_reference_base`` is generated once per order and every
  checkout attempt derives its own reference from it
  (``<base>_<attempt>``).  Both it and ``payment_reference`` carry a
  unique index, the generators only make collisions unlikely.
- A PAID order is always PROCESSING, SHIPPED or DELIVERED (check
  constraint ``orders_paid_requires_fulfilment_status``).
- User FK uses PROTECT to preserve financial history.
- OrderItem snapshots the product price at creation time (``unit_price``)
  and ``subtotal`` is always ``quantity * unit_price``.
"""

from __future__ import annotations

import secrets
import time
from decimal import Decimal
from typing import Any, Callable

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    PAID_ORDER_STATES,
    PAYMENT_REFERENCE_MAX_RETRIES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references, API look-ups and gateway metadata.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.DRAFT,
    )
    payment_status: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=PaymentMethod.choices,
        null=True,
        blank=True,
    )
    payment_reference_base: models.CharField = models.CharField(
        max_length=100, unique=True, editable=False
    )
    payment_reference: models.CharField = models.CharField(  # noqa: DJ01
        max_length=120,
        unique=True,
        null=True,
        blank=True,
    )
    payment_attempts: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    shipping_address: models.JSONField = models.JSONField(null=True, blank=True)
    billing_address: models.JSONField = models.JSONField(null=True, blank=True)
    notes: models.TextField = models.TextField(blank=True, default="")
    tracking_number: models.CharField = models.CharField(
        max_length=40, blank=True, default=""
    )
    is_confirmed: models.BooleanField = models.BooleanField(default=False)
    paid_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(
                fields=["user", "-created_at"], name="orders_user_created_idx"
            ),
            models.Index(
                fields=["status", "payment_status", "updated_at"],
                name="orders_reconcile_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(payment_status=PaymentStatus.PAID)
                | models.Q(status__in=PAID_ORDER_STATES),
                name="orders_paid_requires_fulfilment_status",
            ),
        ]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    @staticmethod
    def generate_payment_reference_base(user_id: Any) -> str:
        """``<userId>_<epoch millis><random hex>``."""
        millis = int(time.time() * 1000)
        return f"{user_id}_{millis}{secrets.token_hex(4)}"

    @staticmethod
    def generate_tracking_number() -> str:
        return f"TRK-{secrets.token_hex(6).upper()}"

    def attempt_reference(self, attempt: int) -> str:
        """Gateway reference for checkout attempt number *attempt*."""
        return f"{self.payment_reference_base}_{attempt}"

    def _pick_unique(self, field: str, generate: Callable[[], str], retries: int) -> str:
        for _ in range(retries):
            candidate = generate()
            if not Order.objects.filter(**{field: candidate}).exists():
                return candidate
        raise RuntimeError(f"Failed to generate unique {field} after {retries} attempts")

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            self.order_number = self._pick_unique(
                "order_number", self.generate_order_number, ORDER_NUMBER_MAX_RETRIES
            )
        if not self.payment_reference_base:
            self.payment_reference_base = self._pick_unique(
                "payment_reference_base",
                lambda: self.generate_payment_reference_base(self.user_id),
                PAYMENT_REFERENCE_MAX_RETRIES,
            )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status}/{self.payment_status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``unit_price`` is a **snapshot** of the product price at the time of
    purchase; it never changes even if the product price is updated later.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.unit_price:
            unit_price = getattr(self.product, "price", None)
            if unit_price is None:
                raise ValidationError({"unit_price": "Product price is required."})
            self.unit_price = unit_price
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``user`` is nullable: ``None`` means the change was performed by the
    system (webhook, reconciliation).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
