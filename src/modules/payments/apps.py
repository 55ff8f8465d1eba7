from __future__ import annotations

from django.apps import AppConfig, apps
from django.conf import settings


class PaymentsConfig(AppConfig):
    name = "modules.payments"
    label = "payments"
    verbose_name = "Payments"

    gateway = None

    def ready(self) -> None:
        from modules.payments.gateway import PaystackGateway

        self.gateway = PaystackGateway(
            secret_key=settings.PAYMENT_GATEWAY_SECRET_KEY,
            base_url=settings.PAYMENT_GATEWAY_BASE_URL,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
            currency=settings.PAYMENT_CURRENCY,
        )


def get_payment_gateway():
    """The process-wide gateway client built at startup."""
    return apps.get_app_config("payments").gateway
