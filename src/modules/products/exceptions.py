"""Product domain exceptions."""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist."""

    def __init__(self, product_id: str) -> None:
        self.product_id = str(product_id)
        super().__init__(f"Product {product_id} not found.")
