"""Asynchronous tasks of the orders module."""

from __future__ import annotations

from typing import Optional

import structlog
from celery import shared_task
from django.conf import settings

from modules.orders.services import build_order_service

logger = structlog.get_logger(__name__)


@shared_task(name="orders.reconcile_awaiting_payments")
def reconcile_awaiting_payments(
    older_than_minutes: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    """Confirm orders whose payment webhook never arrived.

    Runs the same verification as client polling, so an order that is
    confirmed concurrently by a late webhook is still only paid once.
    """
    if older_than_minutes is None:
        older_than_minutes = settings.PAYMENT_RECONCILE_AFTER_MINUTES
    if limit is None:
        limit = settings.PAYMENT_RECONCILE_BATCH_SIZE

    logger.info(
        "payment.reconciliation_started",
        older_than_minutes=older_than_minutes,
        limit=limit,
    )
    return build_order_service().reconcile_awaiting_payments(
        older_than_minutes=older_than_minutes, limit=limit
    )
