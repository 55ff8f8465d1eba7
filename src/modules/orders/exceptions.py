"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List


class OrderNotFound(Exception):
    """The order does not exist or does not belong to the caller."""


class InvalidOrderStatus(Exception):
    """The order is in a status that does not allow the operation."""


class InactiveProduct(Exception):
    """A product referenced by an order item is inactive."""


class InsufficientStock(Exception):
    """Not enough stock to place the order."""

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}."
        )


class OutOfStock(Exception):
    """One or more lines of an order can no longer be fulfilled at checkout."""

    def __init__(self, items: List[Dict[str, Any]]) -> None:
        self.items = items
        super().__init__("Some products are out of stock.")


class OrderAlreadyPaid(Exception):
    """Checkout was requested for an order that has already been paid."""


class InvalidPaymentMethod(Exception):
    """The payment method is not one of the supported methods."""


class TotalAmountMismatch(Exception):
    """The client-supplied total disagrees with the server-computed total."""

    def __init__(self, client_total: Decimal, server_total: Decimal) -> None:
        self.client_total = client_total
        self.server_total = server_total
        super().__init__(
            f"Total amount {client_total} does not match the sum of "
            f"item prices ({server_total})."
        )


class MissingTotalAmount(Exception):
    """The order has no payable total."""


class PaymentInitializationFailed(Exception):
    """The payment gateway declined to open a transaction."""
