"""Django ORM implementation of the cart repository."""

from __future__ import annotations

from typing import Optional

import structlog

from modules.carts.models import Cart, CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    def get_by_user(self, user_id: int) -> Optional[Cart]:
        return Cart.objects.prefetch_related("items").filter(user_id=user_id).first()

    def clear(self, user_id: int) -> int:
        deleted, _ = CartItem.objects.filter(cart__user_id=user_id).delete()
        logger.info("cart.cleared", user_id=user_id, items_removed=deleted)
        return deleted
