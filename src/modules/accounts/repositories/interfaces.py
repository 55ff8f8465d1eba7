"""Account repository interface.

The order workflow needs three things from the account store:
fetch a user, append an address to the user's address book and
persist whitelisted profile changes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

    from modules.accounts.dtos import AddressDTO
    from modules.accounts.models import Address


class IAccountRepository(IRepository["AbstractBaseUser"]):
    """Repository contract for users and their saved addresses."""

    @abstractmethod
    def list_addresses(self, user_id: int) -> List[Address]:
        """Return the user's saved addresses, oldest first."""

    @abstractmethod
    def add_address(self, user_id: int, address: AddressDTO) -> Address:
        """Append an address to the user's address book."""

    @abstractmethod
    def has_street(self, user_id: int, street: str) -> bool:
        """Whether the user already saved an address with this street."""
