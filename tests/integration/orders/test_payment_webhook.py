"""Integration tests for ``POST /api/v1/webhooks/payment/``.

Scenario: a product with stock 5, an order for 2 units at 50.00 awaiting
payment under reference ``R1``.  A signed ``charge.success`` confirms it
once; replays, bad signatures and foreign events change nothing.
"""

from __future__ import annotations

import json
from decimal import Decimal

import pytest
from django.conf import settings
from rest_framework.throttling import SimpleRateThrottle

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order, OrderItem
from modules.payments.signatures import compute_signature

pytestmark = pytest.mark.integration

URL = "/api/v1/webhooks/payment/"


@pytest.fixture()
def order(user, product):
    order = Order.objects.create(
        user=user,
        status=OrderStatus.AWAITING_PAYMENT,
        payment_method=PaymentMethod.CARD,
        payment_attempts=1,
        payment_reference="R1",
        total_amount=Decimal("100.00"),
    )
    OrderItem.objects.create(
        order=order, product=product, quantity=2, unit_price=Decimal("50.00")
    )
    return order


def _event(order, event_type="charge.success", **data):
    payload = {
        "reference": "R1",
        "status": "success",
        "amount": 10000,
        "metadata": {"orderId": str(order.id), "userId": str(order.user_id)},
    }
    payload.update(data)
    return {"event": event_type, "data": payload}


def _post(client, event, signature=None):
    body = json.dumps(event).encode()
    if signature is None:
        signature = compute_signature(body, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET)
    return client.post(
        URL,
        data=body,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=signature,
    )


class TestWebhookConfirmation:
    def test_confirms_order_and_decrements_stock(self, api_client, order, product):
        response = _post(api_client, _event(order))

        assert response.status_code == 200
        assert response.json() == {"status": "received"}

        order.refresh_from_db()
        assert order.status == OrderStatus.PROCESSING
        assert order.payment_status == PaymentStatus.PAID
        assert order.is_confirmed is True
        assert order.tracking_number.startswith("TRK-")
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_duplicate_delivery_is_idempotent(self, api_client, order, product):
        _post(api_client, _event(order))
        order.refresh_from_db()
        tracking = order.tracking_number

        response = _post(api_client, _event(order))

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.tracking_number == tracking
        product.refresh_from_db()
        assert product.stock_quantity == 3
        assert OutboxEvent.objects.filter(event_type="PaymentConfirmed").count() == 1

    def test_resolves_order_by_reference(self, api_client, order, product):
        _post(api_client, _event(order, metadata={}))

        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID

    def test_string_metadata(self, api_client, order):
        metadata = json.dumps({"orderId": str(order.id), "userId": str(order.user_id)})
        _post(api_client, _event(order, metadata=metadata))

        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID


class TestWebhookRejections:
    def test_bad_signature(self, api_client, order, product):
        response = _post(api_client, _event(order), signature="deadbeef")

        assert response.status_code == 401
        assert response.json()["status"] == "error"
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING
        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_missing_signature(self, api_client, order):
        response = api_client.post(
            URL, data=json.dumps(_event(order)), content_type="application/json"
        )
        assert response.status_code == 401

    def test_signature_over_different_body(self, api_client, order):
        other = json.dumps({"event": "charge.success"}).encode()
        signature = compute_signature(other, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET)

        response = _post(api_client, _event(order), signature=signature)

        assert response.status_code == 401


class TestWebhookIgnoredEvents:
    def test_other_event_type(self, api_client, order):
        response = _post(api_client, _event(order, event_type="transfer.success"))

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

    def test_unknown_order(self, api_client, order):
        response = _post(
            api_client,
            _event(order, reference="R404", metadata={"orderId": "not-a-uuid"}),
        )
        assert response.status_code == 200
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

    def test_owner_mismatch(self, api_client, order, product):
        response = _post(
            api_client,
            _event(order, metadata={"orderId": str(order.id), "userId": "424242"}),
        )
        assert response.status_code == 200
        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_signed_garbage_still_acknowledged(self, api_client):
        body = b"not json"
        signature = compute_signature(body, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET)

        response = api_client.post(
            URL,
            data=body,
            content_type="application/json",
            HTTP_X_PAYSTACK_SIGNATURE=signature,
        )

        assert response.status_code == 200
        assert response.json() == {"status": "received"}

    def test_no_jwt_required(self, api_client, order):
        assert _post(api_client, _event(order)).status_code == 200


def test_signed_deliveries_are_never_throttled(api_client, order, monkeypatch):
    monkeypatch.setitem(SimpleRateThrottle.THROTTLE_RATES, "anon", "1/minute")

    codes = [_post(api_client, _event(order)).status_code for _ in range(3)]

    assert codes == [200, 200, 200]
