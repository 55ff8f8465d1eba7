"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``CheckoutDTO``: input for a checkout attempt.
- ``CheckoutResultDTO``: what the client needs to reach the payment page.
- ``ConfirmationResult``: outcome of a payment confirmation attempt.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.accounts.dtos import AddressDTO, ProfileUpdateDTO

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    The frontend sends ``product_id`` and ``quantity``.
    ``unit_price`` is resolved by the Service Layer from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``total_amount`` is what the client believes the order costs.  It is
    only compared against the server-side total, never stored.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    items: List[CreateOrderItemDTO]
    total_amount: Optional[Decimal] = None
    notes: Optional[str] = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same order."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class CheckoutDTO(BaseModel):
    """Immutable DTO for a checkout attempt.

    ``payment_method`` is a plain string: an unknown method is a domain
    error (``InvalidPaymentMethod``), not a schema error.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    order_id: UUID
    shipping_address: AddressDTO
    billing_address: AddressDTO
    payment_method: str
    email: str
    notes: Optional[str] = ""
    profile: Optional[ProfileUpdateDTO] = None


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class CheckoutResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    payment_url: str
    reference: str
    payment_method: str
    attempt_number: int


class ConfirmationResult(BaseModel):
    """Outcome of ``OrderService.confirm_payment``.

    ``applied`` is ``True`` only for the call that actually moved the
    order to PAID; every other call sees the already-paid order.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order: Any
    applied: bool
