"""Unit tests for AccountDjangoRepository."""

from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model

from modules.accounts.dtos import AddressDTO
from modules.accounts.models import Address
from modules.accounts.repositories.django_repository import AccountDjangoRepository

pytestmark = pytest.mark.unit

User = get_user_model()


@pytest.fixture()
def repo():
    return AccountDjangoRepository()


@pytest.fixture()
def address_dto():
    return AddressDTO(
        street="5 Allen Avenue",
        city="Ikeja",
        state="Lagos",
        zip_code="100271",
        country="NG",
    )


class TestGetById:
    def test_returns_active_user(self, repo, user):
        assert repo.get_by_id(user.pk) == user

    def test_inactive_user_is_none(self, repo, user):
        user.is_active = False
        user.save()
        assert repo.get_by_id(user.pk) is None

    def test_missing_user_is_none(self, repo):
        assert repo.get_by_id(999999) is None

    def test_garbage_id_is_none(self, repo):
        assert repo.get_by_id("not-a-number") is None


class TestAddresses:
    def test_add_and_list(self, repo, user, address_dto):
        record = repo.add_address(user.pk, address_dto)

        assert isinstance(record, Address)
        assert repo.list_addresses(user.pk) == [record]
        assert record.as_dict() == address_dto.as_dict()

    def test_has_street(self, repo, user, address_dto):
        assert repo.has_street(user.pk, "5 Allen Avenue") is False
        repo.add_address(user.pk, address_dto)
        assert repo.has_street(user.pk, "5 Allen Avenue") is True

    def test_has_street_is_scoped_to_user(self, repo, user, other_user, address_dto):
        repo.add_address(other_user.pk, address_dto)
        assert repo.has_street(user.pk, "5 Allen Avenue") is False


def test_save_persists_profile(repo, user):
    user.last_name = "Lovelace"
    repo.save(user)
    user.refresh_from_db()
    assert user.last_name == "Lovelace"
