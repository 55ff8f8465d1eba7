"""Event handlers for Orders domain events.

Run by the outbox relay after the originating transaction committed.
"""

from __future__ import annotations

import structlog

from modules.orders.events import CheckoutInitiated, OrderCreated, PaymentConfirmed

logger = structlog.get_logger(__name__)


class OrderCreatedHandler:
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            total_amount=event.total_amount,
        )


class CheckoutInitiatedHandler:
    def handle(self, event: CheckoutInitiated) -> None:
        logger.info(
            "order.event.checkout_initiated",
            order_id=str(event.aggregate_id),
            attempt_number=event.attempt_number,
            payment_method=event.payment_method,
        )


class PaymentConfirmedHandler:
    def handle(self, event: PaymentConfirmed) -> None:
        logger.info(
            "order.event.payment_confirmed",
            order_id=str(event.aggregate_id),
            source=event.source,
            tracking_number=event.tracking_number,
        )


order_created_handler = OrderCreatedHandler()
checkout_initiated_handler = CheckoutInitiatedHandler()
payment_confirmed_handler = PaymentConfirmedHandler()
