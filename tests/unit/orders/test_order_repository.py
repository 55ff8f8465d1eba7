"""Unit tests for OrderDjangoRepository.

Focus on the guarded single-statement writes: each one must change the
row only while the guard in its WHERE clause still holds.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.events import OrderCreated
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


@pytest.fixture()
def order(repo, user, product):
    return repo.create(
        {
            "user_id": user.pk,
            "items": [
                {"product_id": product.id, "quantity": 2, "unit_price": product.price}
            ],
            "notes": "ring twice",
        }
    )


def _awaiting(order, attempt=1):
    Order.objects.filter(id=order.id).update(
        status=OrderStatus.AWAITING_PAYMENT,
        payment_method=PaymentMethod.CARD,
        payment_attempts=attempt,
        payment_reference=order.attempt_reference(attempt),
    )
    order.refresh_from_db()
    return order


class TestCreateAndRead:
    def test_create_sums_items(self, order):
        assert order.total_amount == Decimal("100.00")
        assert order.items.count() == 1
        assert order.notes == "ring twice"

    def test_get_for_user_is_scoped(self, repo, order, user, other_user):
        assert repo.get_for_user(str(order.id), user.pk) == order
        assert repo.get_for_user(str(order.id), other_user.pk) is None

    def test_get_by_id_invalid(self, repo):
        assert repo.get_by_id("garbage") is None

    def test_get_for_update(self, repo, order, user):
        locked = repo.get_for_update(str(order.id), user.pk)
        assert locked.id == order.id

    def test_get_by_reference(self, repo, order, user, other_user):
        _awaiting(order)
        reference = order.attempt_reference(1)
        assert repo.get_by_reference(reference) == order
        assert repo.get_by_reference(reference, user_id=user.pk) == order
        assert repo.get_by_reference(reference, user_id=other_user.pk) is None
        assert repo.get_by_reference("unknown") is None

    def test_list_awaiting_payment(self, repo, order, user, product):
        _awaiting(order)
        fresh = repo.create(
            {
                "user_id": user.pk,
                "items": [
                    {"product_id": product.id, "quantity": 1, "unit_price": product.price}
                ],
            }
        )
        _awaiting(fresh)
        Order.objects.filter(id=order.id).update(
            updated_at=timezone.now() - timedelta(hours=1)
        )

        stale = repo.list_awaiting_payment(
            updated_before=timezone.now() - timedelta(minutes=10), limit=10
        )

        assert [o.id for o in stale] == [order.id]


class TestOutbox:
    def test_save_flushes_domain_events(self, repo, order):
        order.add_domain_event(OrderCreated(aggregate_id=order.id, order_number="X"))
        repo.save(order)

        row = OutboxEvent.objects.get()
        assert row.event_type == "OrderCreated"
        assert row.aggregate_id == str(order.id)
        assert row.payload["order_number"] == "X"
        assert order.domain_events == []

    def test_record_events_without_events(self, repo, order):
        assert repo.record_events(order) == 0
        assert OutboxEvent.objects.count() == 0


class TestHistory:
    def test_add_history(self, repo, order, user):
        repo.add_history(
            order.id,
            OrderStatus.AWAITING_PAYMENT,
            notes="Checkout attempt 1",
            old_status=OrderStatus.DRAFT,
            user_id=user.pk,
        )
        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status == OrderStatus.DRAFT
        assert history.new_status == OrderStatus.AWAITING_PAYMENT
        assert history.user_id == user.pk


class TestConditionalWrites:
    def test_increment_payment_attempts(self, repo, order):
        assert repo.increment_payment_attempts(order.id) == 1
        assert repo.increment_payment_attempts(order.id) == 2

    def test_mark_paid_if_pending_applies_once(self, repo, order):
        now = timezone.now()
        assert repo.mark_paid_if_pending(order.id, "TRK-1", now) is True
        assert repo.mark_paid_if_pending(order.id, "TRK-2", now) is False

        order.refresh_from_db()
        assert order.status == OrderStatus.PROCESSING
        assert order.payment_status == PaymentStatus.PAID
        assert order.tracking_number == "TRK-1"
        assert order.is_confirmed is True

    def test_mark_paid_skips_cancelled(self, repo, order):
        Order.objects.filter(id=order.id).update(status=OrderStatus.CANCELLED)
        assert repo.mark_paid_if_pending(order.id, "TRK-1", timezone.now()) is False

    def test_mark_paid_unknown_order(self, repo):
        assert repo.mark_paid_if_pending(uuid4(), "TRK-1", timezone.now()) is False

    def test_store_gateway_reference(self, repo, order):
        assert repo.store_gateway_reference(order.id, "gw-ref") is True
        order.refresh_from_db()
        assert order.payment_reference == "gw-ref"

    def test_store_gateway_reference_skips_paid(self, repo, order):
        repo.mark_paid_if_pending(order.id, "TRK-1", timezone.now())
        assert repo.store_gateway_reference(order.id, "late-ref") is False

    def test_revert_to_draft(self, repo, order):
        _awaiting(order)

        assert repo.revert_to_draft(order.id) is True

        order.refresh_from_db()
        assert order.status == OrderStatus.DRAFT
        assert order.payment_method is None
        assert order.payment_attempts == 1

    def test_revert_to_draft_leaves_paid_order(self, repo, order):
        _awaiting(order)
        repo.mark_paid_if_pending(order.id, "TRK-1", timezone.now())

        assert repo.revert_to_draft(order.id) is False
        order.refresh_from_db()
        assert order.status == OrderStatus.PROCESSING
