"""Cart repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.carts.models import Cart


class ICartRepository(ABC):
    @abstractmethod
    def get_by_user(self, user_id: int) -> Optional["Cart"]:
        """Return the user's cart, ``None`` if they never had one."""

    @abstractmethod
    def clear(self, user_id: int) -> int:
        """Remove every item from the user's cart; returns items removed."""
