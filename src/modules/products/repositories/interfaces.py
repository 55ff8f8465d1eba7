"""Product repository interface.

The order workflow needs exactly two things from the catalog:
fetch a product (id, name, price, stock) and decrement its stock.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> Dict[str, "Product"]:
        """Fetch several products at once, keyed by ``str(id)``.

        Unknown ids are simply absent from the result.
        """

    @abstractmethod
    def decrement_stock(self, id: str, quantity: int) -> int:
        """Atomically lower stock by ``quantity``, clamping at zero.

        Returns the number of rows updated (0 when the product is gone).
        """
