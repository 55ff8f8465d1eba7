"""Unit tests for the Product model and ProductDjangoRepository.

Covers:
- SKU normalisation.
- Batched look-ups with ``get_many``.
- The clamped, single-statement ``decrement_stock``.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


class TestProductModel:
    def test_sku_uppercased_on_save(self):
        product = Product.objects.create(
            sku=" shoe-01 ", name="Loafers", price=Decimal("10.00"), stock_quantity=1
        )
        assert product.sku == "SHOE-01"

    def test_is_active(self, product, inactive_product):
        assert product.is_active is True
        assert inactive_product.is_active is False
        assert inactive_product.status == ProductStatus.INACTIVE


class TestLookups:
    def test_get_by_id(self, repo, product):
        assert repo.get_by_id(str(product.id)) == product

    def test_get_by_id_invalid_uuid(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_get_many_omits_unknown_ids(self, repo, product, product_b):
        found = repo.get_many([str(product.id), str(product_b.id), str(uuid4())])
        assert set(found) == {str(product.id), str(product_b.id)}

    def test_get_many_with_invalid_id(self, repo):
        assert repo.get_many(["garbage"]) == {}


class TestDecrementStock:
    def test_decrements_by_quantity(self, repo, product):
        assert repo.decrement_stock(str(product.id), 2) == 1
        product.refresh_from_db()
        assert product.stock_quantity == 3

    def test_decrement_to_exactly_zero(self, repo, product):
        repo.decrement_stock(str(product.id), 5)
        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_clamps_at_zero(self, repo, product):
        repo.decrement_stock(str(product.id), 8)
        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_zero_stock_stays_zero(self, repo, product):
        Product.objects.filter(id=product.id).update(stock_quantity=0)
        repo.decrement_stock(str(product.id), 1)
        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_unknown_product_updates_nothing(self, repo):
        assert repo.decrement_stock(str(uuid4()), 1) == 0

    def test_bumps_updated_at(self, repo, product):
        before = product.updated_at
        repo.decrement_stock(str(product.id), 1)
        product.refresh_from_db()
        assert product.updated_at >= before
