"""Django ORM implementation of the Product repository.

Methods return ``None`` (or omit entries) for missing products instead
of raising; the service layer decides what a missing product means.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        try:
            products = Product.objects.filter(id__in=list(ids))
            return {str(p.id): p for p in products}
        except (ValueError, ValidationError):
            return {}

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info(
            "product.saved",
            product_id=str(entity.id),
            sku=entity.sku,
        )
        return entity

    def decrement_stock(self, id: str, quantity: int) -> int:
        """Single-statement clamped decrement.

        ``UPDATE products SET stock_quantity = GREATEST(stock_quantity, n) - n``
        which equals ``max(stock - n, 0)`` without a negative intermediate
        (unsigned columns on MySQL reject those).
        """
        updated = Product.objects.filter(id=id).update(
            stock_quantity=Greatest(F("stock_quantity"), Value(quantity)) - quantity,
            updated_at=timezone.now(),
        )
        logger.info(
            "product.stock_decremented",
            product_id=str(id),
            quantity=quantity,
            rows=updated,
        )
        return updated
