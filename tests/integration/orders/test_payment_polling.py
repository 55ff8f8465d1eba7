"""Integration tests for the client polling endpoints.

- ``GET /api/v1/orders/{id}/status/``
- ``GET /api/v1/orders/verify/{reference}/``

Both verify with the gateway and share the webhook's confirmation path.
"""

from __future__ import annotations

import json

import pytest
from django.conf import settings
from rest_framework.test import APIClient

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order
from modules.payments.exceptions import PaymentGatewayUnavailable
from modules.payments.signatures import compute_signature

pytestmark = pytest.mark.integration

WEBHOOK_URL = "/api/v1/webhooks/payment/"


def _post(client, event):
    body = json.dumps(event).encode()
    signature = compute_signature(body, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET)
    return client.post(
        WEBHOOK_URL,
        data=body,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=signature,
    )


@pytest.fixture()
def order(auth_client, gateway, product, address_payload):
    """An order after one successful checkout (awaiting payment)."""
    created = auth_client.post(
        "/api/v1/orders/",
        {"items": [{"product_id": str(product.id), "quantity": 2}]},
        format="json",
    )
    order_id = created.json()["order"]["order_id"]
    auth_client.put(
        "/api/v1/orders/checkout/",
        {
            "order_id": order_id,
            "shipping_address": address_payload,
            "billing_address": address_payload,
            "payment_method": "BANK_TRANSFER",
            "email": "shopper@example.com",
        },
        format="json",
    )
    return Order.objects.get(id=order_id)


class TestStatusEndpoint:
    def test_confirms_when_gateway_reports_success(self, auth_client, gateway, order, product):
        response = auth_client.get(f"/api/v1/orders/{order.id}/status/")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["order"]["status"] == OrderStatus.PROCESSING
        assert body["order"]["payment_status"] == PaymentStatus.PAID
        assert gateway.verify_calls == [order.payment_reference]
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_repeated_polling_confirms_once(self, auth_client, gateway, order, product):
        auth_client.get(f"/api/v1/orders/{order.id}/status/")
        auth_client.get(f"/api/v1/orders/{order.id}/status/")

        assert len(gateway.verify_calls) == 1
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_abandoned_payment_leaves_order_waiting(self, auth_client, gateway, order):
        gateway.verify_status = "abandoned"

        response = auth_client.get(f"/api/v1/orders/{order.id}/status/")

        assert response.status_code == 200
        assert response.json()["order"]["status"] == OrderStatus.AWAITING_PAYMENT

    def test_gateway_outage_returns_current_state(self, auth_client, gateway, order):
        gateway.verify_error = PaymentGatewayUnavailable("timeout")

        response = auth_client.get(f"/api/v1/orders/{order.id}/status/")

        assert response.status_code == 200
        assert response.json()["order"]["payment_status"] == PaymentStatus.PENDING

    def test_other_users_order(self, gateway, order, other_user):
        client = APIClient()
        client.force_authenticate(user=other_user)
        response = client.get(f"/api/v1/orders/{order.id}/status/")
        assert response.status_code == 404


class TestVerifyEndpoint:
    def test_verify_by_reference(self, auth_client, gateway, order):
        response = auth_client.get(f"/api/v1/orders/verify/{order.payment_reference}/")

        assert response.status_code == 200
        assert response.json()["order"]["id"] == str(order.id)
        assert response.json()["order"]["payment_status"] == PaymentStatus.PAID

    def test_unknown_reference(self, auth_client, gateway):
        response = auth_client.get("/api/v1/orders/verify/does-not-exist/")
        assert response.status_code == 404
        assert gateway.verify_calls == []


def test_webhook_after_polling_is_noop(auth_client, api_client, gateway, order, product):
    auth_client.get(f"/api/v1/orders/{order.id}/status/")

    response = _post(
        api_client,
        {
            "event": "charge.success",
            "data": {
                "reference": order.payment_reference,
                "metadata": {"orderId": str(order.id), "userId": str(order.user_id)},
            },
        },
    )

    assert response.status_code == 200
    product.refresh_from_db()
    assert product.stock_quantity == 3
