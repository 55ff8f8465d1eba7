from decimal import Decimal

import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.payments.exceptions import PaymentGatewayRejected, PaymentGatewayUnavailable
from modules.payments.gateway import (
    IPaymentGateway,
    TransactionInitialization,
    TransactionVerification,
)
from modules.products.models import Product, ProductStatus

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _reset_throttles():
    """DRF throttling counters live in the cache; start every test clean."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def user():
    return User.objects.create_user(
        username="shopper",
        password="testpass123",
        email="shopper@example.com",
        first_name="Ada",
    )


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="intruder", password="testpass123")


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def product():
    return Product.objects.create(
        sku="TEE-100",
        name="Cotton T-Shirt",
        price=Decimal("50.00"),
        stock_quantity=5,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def product_b():
    return Product.objects.create(
        sku="BAG-200",
        name="Tote Bag",
        price=Decimal("25.50"),
        stock_quantity=10,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def inactive_product():
    return Product.objects.create(
        sku="OLD-001",
        name="Discontinued Hat",
        price=Decimal("5.00"),
        stock_quantity=10,
        status=ProductStatus.INACTIVE,
    )


@pytest.fixture()
def address_payload():
    return {
        "street": "12 Marina Road",
        "city": "Lagos",
        "state": "Lagos",
        "zip_code": "100001",
        "country": "NG",
    }


# ---------------------------------------------------------------------------
# Payment gateway double
# ---------------------------------------------------------------------------


class FakeGateway(IPaymentGateway):
    """In-memory gateway that records calls.

    ``init_error`` / ``verify_error`` are raised instead of answering.
    ``verify_status`` and ``verify_metadata`` shape the verification result.
    """

    def __init__(self) -> None:
        self.init_calls = []
        self.verify_calls = []
        self.init_error = None
        self.verify_error = None
        self.verify_status = "success"
        self.verify_metadata = None

    def initialize_transaction(
        self, *, email, amount, reference, callback_url, metadata, channels
    ):
        self.init_calls.append(
            {
                "email": email,
                "amount": amount,
                "reference": reference,
                "callback_url": callback_url,
                "metadata": metadata,
                "channels": channels,
            }
        )
        if self.init_error is not None:
            raise self.init_error
        return TransactionInitialization(
            authorization_url=f"https://checkout.test/{reference}",
            reference=reference,
            access_code="acc_test",
        )

    def verify_transaction(self, reference):
        self.verify_calls.append(reference)
        if self.verify_error is not None:
            raise self.verify_error
        metadata = self.verify_metadata
        if metadata is None:
            last = self.init_calls[-1]["metadata"] if self.init_calls else {}
            metadata = dict(last)
        return TransactionVerification(
            reference=reference,
            status=self.verify_status,
            amount=0,
            metadata=metadata,
        )

    def reject_next(self, message="Invalid key"):
        self.init_error = PaymentGatewayRejected(message, status_code=400)

    def fail_next(self):
        self.init_error = PaymentGatewayUnavailable("Payment gateway request failed")


@pytest.fixture()
def gateway(monkeypatch):
    """Replace the process-wide gateway with a ``FakeGateway``."""
    fake = FakeGateway()
    monkeypatch.setattr(apps.get_app_config("payments"), "gateway", fake)
    return fake
