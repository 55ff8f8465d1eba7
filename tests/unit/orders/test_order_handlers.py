"""Unit tests for Orders event handlers and their bus subscriptions."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from modules.orders.events import CheckoutInitiated, OrderCreated, PaymentConfirmed
from modules.orders.handlers import (
    CheckoutInitiatedHandler,
    OrderCreatedHandler,
    PaymentConfirmedHandler,
    checkout_initiated_handler,
    order_created_handler,
    payment_confirmed_handler,
)
from shared.infrastructure.bus import InMemoryEventBus, event_bus

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "handler, event, expected",
    [
        (
            OrderCreatedHandler(),
            OrderCreated(aggregate_id=uuid4(), order_number="ORD-1"),
            "order.event.created",
        ),
        (
            CheckoutInitiatedHandler(),
            CheckoutInitiated(aggregate_id=uuid4(), attempt_number=2),
            "order.event.checkout_initiated",
        ),
        (
            PaymentConfirmedHandler(),
            PaymentConfirmed(aggregate_id=uuid4(), source="webhook"),
            "order.event.payment_confirmed",
        ),
    ],
)
def test_handler_logs(handler, event, expected, caplog):
    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        handler.handle(event)

    assert any(expected in record.getMessage() for record in caplog.records)


def test_handlers_subscribed_on_startup():
    assert order_created_handler in event_bus.handlers_for(OrderCreated)
    assert checkout_initiated_handler in event_bus.handlers_for(CheckoutInitiated)
    assert payment_confirmed_handler in event_bus.handlers_for(PaymentConfirmed)


def test_bus_dispatches_by_event_type():
    received = []

    class Recorder:
        def handle(self, event):
            received.append(event)

    bus = InMemoryEventBus()
    recorder = Recorder()
    bus.subscribe(PaymentConfirmed, recorder)
    bus.subscribe(PaymentConfirmed, recorder)

    confirmed = PaymentConfirmed(aggregate_id=uuid4(), source="polling")
    bus.publish(OrderCreated(aggregate_id=uuid4()))
    bus.publish(confirmed)

    assert received == [confirmed]


def test_bus_propagates_handler_errors():
    class Broken:
        def handle(self, event):
            raise RuntimeError("boom")

    bus = InMemoryEventBus()
    bus.subscribe(OrderCreated, Broken())

    with pytest.raises(RuntimeError):
        bus.publish(OrderCreated(aggregate_id=uuid4()))
