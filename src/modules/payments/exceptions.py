"""Payment gateway exceptions.

``PaymentGatewayUnavailable`` means the gateway could not be reached or
answered garbage (timeout, connection error, 5xx, non-JSON body); the
caller may retry.  ``PaymentGatewayRejected`` means the gateway answered
and said no (``status: false`` or a 4xx).
"""

from __future__ import annotations

from typing import Optional


class PaymentGatewayError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PaymentGatewayUnavailable(PaymentGatewayError):
    """Network failure, timeout or server-side error at the gateway."""


class PaymentGatewayRejected(PaymentGatewayError):
    """The gateway processed the request and declined it."""
