"""Django ORM implementation of the account repository."""

from __future__ import annotations

from typing import List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AbstractBaseUser
from django.db import transaction

from modules.accounts.dtos import AddressDTO
from modules.accounts.models import Address
from modules.accounts.repositories.interfaces import IAccountRepository

logger = structlog.get_logger(__name__)


class AccountDjangoRepository(IAccountRepository):
    """Concrete account repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[AbstractBaseUser]:
        """Retrieve an active user by primary key, ``None`` otherwise."""
        try:
            return get_user_model().objects.filter(pk=id, is_active=True).first()
        except (TypeError, ValueError):
            return None

    @transaction.atomic
    def save(self, entity: AbstractBaseUser) -> AbstractBaseUser:
        entity.save()
        logger.info("account.saved", user_id=entity.pk)
        return entity

    def list_addresses(self, user_id: int) -> List[Address]:
        return list(Address.objects.filter(user_id=user_id))

    @transaction.atomic
    def add_address(self, user_id: int, address: AddressDTO) -> Address:
        record = Address.objects.create(user_id=user_id, **address.as_dict())
        logger.info(
            "account.address_added",
            user_id=user_id,
            address_id=str(record.id),
        )
        return record

    def has_street(self, user_id: int, street: str) -> bool:
        return Address.objects.filter(user_id=user_id, street=street).exists()
