"""Integration tests for the cross-cutting HTTP surface.

Health probe, correlation IDs, the generic 500 handler, JWT auth and
the Celery wiring.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from django.contrib.auth import get_user_model

from modules.orders.services import OrderService

pytestmark = pytest.mark.integration

User = get_user_model()


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_reports_dependencies(self, client):
        services = client.get("/health").json()["services"]
        assert services["database"]["status"] == "up"
        assert services["cache"]["status"] == "up"
        assert services["payment_gateway"]["status"] == "configured"

    def test_unconfigured_gateway_is_reported(self, client, settings):
        settings.PAYMENT_GATEWAY_SECRET_KEY = ""
        services = client.get("/health").json()["services"]
        assert services["payment_gateway"]["status"] == "unconfigured"


class TestCorrelationId:
    def test_returns_provided_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation
        response = client.get("/health")
        assert response["X-Request-ID"] == cid

    def test_generates_uuid_when_no_request_id(self, client):
        request_id = client.get("/health")["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert any(custom_id in record.getMessage() for record in caplog.records)


class TestErrorHandling:
    def test_unexpected_error_is_generic_500(self, auth_client, monkeypatch):
        def explode(self, user_id, order_id):
            raise RuntimeError("database exploded: secret details")

        monkeypatch.setattr(OrderService, "get_order", explode)

        response = auth_client.get(f"/api/v1/orders/{uuid.uuid4()}/")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error."}

    def test_unauthenticated_is_401(self, api_client):
        assert api_client.get("/api/v1/orders/").status_code == 401


class TestJwtAuth:
    def test_obtain_token_and_call_api(self, api_client, user):
        token = api_client.post(
            "/api/v1/auth/token/",
            {"username": "shopper", "password": "testpass123"},
            format="json",
        )
        assert token.status_code == 200

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.json()['access']}")
        assert api_client.get("/api/v1/orders/").status_code == 200

    def test_bad_token_rejected(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
        assert api_client.get("/api/v1/orders/").status_code == 401


class TestCeleryConfig:
    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_beat_schedule(self, settings):
        tasks = {entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()}
        assert tasks == {"orders.reconcile_awaiting_payments", "core.relay_outbox_events"}

    def test_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]


def test_openapi_schema_is_public(client):
    assert client.get("/api/schema/").status_code == 200
