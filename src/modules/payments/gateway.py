"""Payment gateway client (Paystack-compatible REST API).

Two calls are used:

- ``POST /transaction/initialize`` returns the hosted payment page URL.
- ``GET /transaction/verify/<reference>`` returns the transaction state.

Every call uses a bounded timeout.  Transport problems surface as
``PaymentGatewayUnavailable`` and explicit refusals as
``PaymentGatewayRejected``; nothing is swallowed here.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

import requests
import structlog
from requests import RequestException

from modules.payments.exceptions import (
    PaymentGatewayRejected,
    PaymentGatewayUnavailable,
)

logger = structlog.get_logger(__name__)

SUCCESS_STATUS = "success"


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. naira) to minor units (kobo)."""
    return int(
        (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )


@dataclass(frozen=True)
class TransactionInitialization:
    authorization_url: str
    reference: str
    access_code: str = ""


@dataclass(frozen=True)
class TransactionVerification:
    reference: str
    status: str
    amount: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS_STATUS

    @property
    def order_id(self) -> Optional[str]:
        value = self.metadata.get("orderId")
        return str(value) if value else None


class IPaymentGateway(ABC):
    """Port for the external payment provider."""

    @abstractmethod
    def initialize_transaction(
        self,
        *,
        email: str,
        amount: int,
        reference: str,
        callback_url: str,
        metadata: Dict[str, Any],
        channels: List[str],
    ) -> TransactionInitialization:
        """Open a transaction; ``amount`` is in minor units."""

    @abstractmethod
    def verify_transaction(self, reference: str) -> TransactionVerification:
        """Fetch the current state of a transaction."""


def normalize_metadata(raw: Any) -> Dict[str, Any]:
    # The API echoes metadata back either as an object or as a JSON string.
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            decoded = json.loads(raw)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


class PaystackGateway(IPaymentGateway):
    """``requests``-based client with bearer auth and a bounded timeout."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 15,
        currency: str = "NGN",
        session: Optional[requests.Session] = None,
    ) -> None:
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._currency = currency
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._secret_key)

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        if not self.is_configured:
            raise PaymentGatewayUnavailable("Payment gateway secret key is not configured.")
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        try:
            resp = self._session.request(
                method, url, headers=headers, timeout=self._timeout, **kwargs
            )
        except RequestException as exc:
            logger.warning(
                "payment_gateway.request_failed",
                method=method,
                path=path,
                error=exc.__class__.__name__,
            )
            raise PaymentGatewayUnavailable(
                f"Payment gateway request failed: {exc.__class__.__name__}"
            ) from exc

        if resp.status_code >= 500:
            logger.warning(
                "payment_gateway.server_error",
                path=path,
                status_code=resp.status_code,
            )
            raise PaymentGatewayUnavailable(
                f"Payment gateway error {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise PaymentGatewayUnavailable(
                "Payment gateway returned a non-JSON response",
                status_code=resp.status_code,
            ) from exc

        if not isinstance(body, dict):
            raise PaymentGatewayUnavailable(
                "Payment gateway returned an unexpected payload",
                status_code=resp.status_code,
            )

        if resp.status_code >= 400 or not body.get("status"):
            message = body.get("message") or f"HTTP {resp.status_code}"
            logger.info(
                "payment_gateway.rejected",
                path=path,
                status_code=resp.status_code,
                message=message,
            )
            raise PaymentGatewayRejected(str(message), status_code=resp.status_code)

        return body

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: int,
        reference: str,
        callback_url: str,
        metadata: Dict[str, Any],
        channels: List[str],
    ) -> TransactionInitialization:
        payload = {
            "email": email,
            "amount": amount,
            "currency": self._currency,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata,
            "channels": channels,
        }
        body = self._request("POST", "/transaction/initialize", json=payload)
        data = body.get("data") or {}
        if not data.get("authorization_url"):
            raise PaymentGatewayRejected("Payment gateway returned no authorization URL")
        logger.info("payment_gateway.initialized", reference=data.get("reference"))
        return TransactionInitialization(
            authorization_url=data["authorization_url"],
            reference=data.get("reference") or reference,
            access_code=data.get("access_code") or "",
        )

    def verify_transaction(self, reference: str) -> TransactionVerification:
        body = self._request("GET", f"/transaction/verify/{reference}")
        data = body.get("data") or {}
        return TransactionVerification(
            reference=data.get("reference") or reference,
            status=str(data.get("status") or ""),
            amount=int(data.get("amount") or 0),
            metadata=normalize_metadata(data.get("metadata")),
        )
