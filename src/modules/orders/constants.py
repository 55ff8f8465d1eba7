"""Order domain constants.

Status choices, the order state machine and payment-gateway constants.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    AWAITING_PAYMENT = "AWAITING_PAYMENT", "Awaiting payment"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"


class PaymentMethod(models.TextChoices):
    CARD = "CARD", "Card"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.DRAFT: {
        OrderStatus.AWAITING_PAYMENT,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.AWAITING_PAYMENT: {
        OrderStatus.DRAFT,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Payment confirmation moves an order to PROCESSING, so it is only
# possible from the states that allow that step.
CONFIRMABLE_STATES: tuple[str, ...] = tuple(
    state
    for state, targets in VALID_TRANSITIONS.items()
    if OrderStatus.PROCESSING in targets
)

# Statuses a PAID order may be in (enforced by a check constraint).
PAID_ORDER_STATES: tuple[str, ...] = (
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

PAYMENT_CHANNELS: dict[str, list[str]] = {
    PaymentMethod.CARD: ["card"],
    PaymentMethod.BANK_TRANSFER: ["bank_transfer"],
}

CHARGE_SUCCESS_EVENT = "charge.success"

ORDER_NUMBER_MAX_RETRIES = 5
PAYMENT_REFERENCE_MAX_RETRIES = 5
