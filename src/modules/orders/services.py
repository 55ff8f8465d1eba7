"""Order service layer (Use Cases).

Orchestrates order creation, checkout and payment confirmation.

Business rules enforced:
- Products must exist, be active and have enough stock at creation
  and again at checkout.
- Prices are snapshotted per line; the stored total is always the
  server-side sum.  A client total that disagrees beyond the tolerance
  is rejected.
- Checkout commits its state change before the gateway is called and
  never holds the order row lock across the network call.
- ``confirm_payment`` is the only place the payment transition is
  defined.  The webhook, polling and reconciliation paths all go
  through it, so stock is decremented at most once per order.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.accounts.exceptions import UserNotFound
from modules.orders.constants import (
    CHARGE_SUCCESS_EVENT,
    PAYMENT_CHANNELS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.dtos import CheckoutResultDTO, ConfirmationResult
from modules.orders.events import CheckoutInitiated, OrderCreated, PaymentConfirmed
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    InvalidOrderStatus,
    InvalidPaymentMethod,
    MissingTotalAmount,
    OrderAlreadyPaid,
    OrderNotFound,
    OutOfStock,
    PaymentInitializationFailed,
    TotalAmountMismatch,
)
from modules.payments.exceptions import (
    PaymentGatewayError,
    PaymentGatewayRejected,
    PaymentGatewayUnavailable,
)
from modules.payments.gateway import normalize_metadata, to_minor_units
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.accounts.dtos import AddressDTO
    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.orders.dtos import CheckoutDTO, CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.gateway import IPaymentGateway
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

DEFAULT_TOTAL_TOLERANCE = Decimal("0.01")


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the payment gateway via constructor
    injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        cart_repository: ICartRepository,
        account_repository: IAccountRepository,
        payment_gateway: Optional[IPaymentGateway] = None,
        callback_base_url: str = "",
        total_tolerance: Decimal = DEFAULT_TOTAL_TOLERANCE,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._cart_repo = cart_repository
        self._account_repo = account_repository
        self._gateway = payment_gateway
        self._callback_base_url = callback_base_url.rstrip("/")
        self._total_tolerance = total_tolerance

    # ------------------------------------------------------------------
    # Order Builder
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a DRAFT order from a list of items.

        Stock is checked but not reserved: it is only decremented once
        the payment is confirmed.

        Raises:
            ProductNotFound: a product does not exist.
            InactiveProduct: a product is inactive.
            InsufficientStock: a line asks for more than is in stock.
            TotalAmountMismatch: the client total disagrees with the
                server total beyond the configured tolerance.
        """
        log = logger.bind(user_id=dto.user_id)
        log.info("order.creation_started", item_count=len(dto.items))

        products = self._product_repo.get_many(
            str(item.product_id) for item in dto.items
        )

        repo_items: List[Dict[str, Any]] = []
        server_total = Decimal("0.00")
        for item_dto in dto.items:
            product = products.get(str(item_dto.product_id))
            if product is None:
                raise ProductNotFound(str(item_dto.product_id))
            if not product.is_active:
                raise InactiveProduct(f"Product {product.id} is inactive.")
            if product.stock_quantity < item_dto.quantity:
                raise InsufficientStock(
                    product.id, item_dto.quantity, product.stock_quantity
                )

            server_total += product.price * item_dto.quantity
            repo_items.append(
                {
                    "product_id": product.id,
                    "quantity": item_dto.quantity,
                    "unit_price": product.price,
                }
            )

        if dto.total_amount is not None and (
            abs(dto.total_amount - server_total) > self._total_tolerance
        ):
            log.warning(
                "order.total_mismatch",
                client_total=str(dto.total_amount),
                server_total=str(server_total),
            )
            raise TotalAmountMismatch(dto.total_amount, server_total)

        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "items": repo_items,
                "notes": dto.notes or "",
            }
        )

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                user_id=str(dto.user_id),
                total_amount=str(order.total_amount),
            )
        )
        self._order_repo.record_events(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.DRAFT,
            notes="Order created",
            user_id=dto.user_id,
        )

        self._cart_repo.clear(dto.user_id)

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Checkout Initiator
    # ------------------------------------------------------------------

    def checkout(self, dto: CheckoutDTO) -> CheckoutResultDTO:
        """Open a payment session for a DRAFT order.

        Phase 1 (atomic, order row locked) validates the order and moves
        it to AWAITING_PAYMENT with a fresh attempt reference.  Phase 2
        calls the gateway with no transaction open.  If the gateway
        refuses or cannot be reached, the order returns to DRAFT and the
        attempt counter is kept.

        Raises:
            InvalidPaymentMethod, OrderNotFound, OrderAlreadyPaid,
            InvalidOrderStatus, OutOfStock, MissingTotalAmount,
            UserNotFound, PaymentInitializationFailed,
            PaymentGatewayUnavailable.
        """
        if dto.payment_method not in PaymentMethod.values:
            raise InvalidPaymentMethod(
                "Invalid payment method. Must be CARD or BANK_TRANSFER."
            )
        if self._gateway is None:
            raise PaymentGatewayUnavailable("Payment gateway is not configured.")

        order = self._prepare_checkout(dto)
        attempt = order.payment_attempts
        log = logger.bind(
            order_id=str(order.id),
            user_id=dto.user_id,
            attempt_number=attempt,
        )

        try:
            init = self._gateway.initialize_transaction(
                email=dto.email,
                amount=to_minor_units(order.total_amount),
                reference=order.payment_reference,
                callback_url=self._callback_url(order.id),
                metadata={
                    "orderId": str(order.id),
                    "userId": str(dto.user_id),
                    "attemptId": attempt,
                },
                channels=PAYMENT_CHANNELS[dto.payment_method],
            )
        except PaymentGatewayRejected as exc:
            log.warning("checkout.gateway_rejected", reason=str(exc))
            self._abandon_attempt(order, f"Payment initialization failed: {exc}")
            raise PaymentInitializationFailed(str(exc)) from exc
        except PaymentGatewayUnavailable:
            log.warning("checkout.gateway_unavailable")
            self._abandon_attempt(order, "Payment gateway unavailable")
            raise

        self._order_repo.store_gateway_reference(order.id, init.reference)
        log.info("checkout.initialized", reference=init.reference)

        return CheckoutResultDTO(
            order_id=order.id,
            payment_url=init.authorization_url,
            reference=init.reference,
            payment_method=dto.payment_method,
            attempt_number=attempt,
        )

    @transaction.atomic
    def _prepare_checkout(self, dto: CheckoutDTO) -> Order:
        order = self._order_repo.get_for_update(str(dto.order_id), dto.user_id)
        if not order:
            raise OrderNotFound(f"Order {dto.order_id} not found.")

        log = logger.bind(order_id=str(order.id), user_id=dto.user_id)

        if order.is_paid:
            raise OrderAlreadyPaid(f"Order {order.id} has already been paid.")
        # A previous attempt may have left the order awaiting payment, in
        # which case it goes back through DRAFT first.
        if order.status != OrderStatus.DRAFT and not order.can_transition_to(
            OrderStatus.DRAFT
        ):
            raise InvalidOrderStatus(f"Cannot check out order in status {order.status}.")

        out_of_stock = self._find_out_of_stock(order)
        if out_of_stock:
            log.info("checkout.out_of_stock", item_count=len(out_of_stock))
            raise OutOfStock(out_of_stock)

        previous_status = order.status
        order.status = OrderStatus.DRAFT
        order.payment_status = PaymentStatus.PENDING
        order.payment_method = None

        if not order.total_amount or order.total_amount <= 0:
            raise MissingTotalAmount("Order total amount is missing.")

        user = self._account_repo.get_by_id(dto.user_id)
        if user is None:
            raise UserNotFound(f"User {dto.user_id} not found.")

        self._remember_addresses(
            dto.user_id, [dto.shipping_address, dto.billing_address]
        )
        if dto.profile is not None:
            changes = dto.profile.changes()
            if changes:
                for field, value in changes.items():
                    setattr(user, field, value)
                self._account_repo.save(user)

        attempt = self._order_repo.increment_payment_attempts(order.id)
        order.payment_attempts = attempt
        order.shipping_address = dto.shipping_address.as_dict()
        order.billing_address = dto.billing_address.as_dict()
        order.payment_method = dto.payment_method
        order.notes = dto.notes or ""
        order.status = OrderStatus.AWAITING_PAYMENT
        order.payment_reference = order.attempt_reference(attempt)
        order.add_domain_event(
            CheckoutInitiated(
                aggregate_id=order.id,
                attempt_number=attempt,
                reference=order.payment_reference,
                payment_method=dto.payment_method,
            )
        )
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.AWAITING_PAYMENT,
            notes=f"Checkout attempt {attempt}",
            old_status=previous_status,
            user_id=dto.user_id,
        )
        log.info("checkout.prepared", attempt_number=attempt)
        return order

    def _find_out_of_stock(self, order: Order) -> List[Dict[str, Any]]:
        items = list(order.items.all())
        products = self._product_repo.get_many(str(i.product_id) for i in items)
        shortfalls = []
        for item in items:
            product = products.get(str(item.product_id))
            available = product.stock_quantity if product else 0
            if available < item.quantity:
                shortfalls.append(
                    {
                        "product_id": str(item.product_id),
                        "product_name": product.name if product else "",
                        "requested_quantity": item.quantity,
                        "available_stock": available,
                    }
                )
        return shortfalls

    def _remember_addresses(self, user_id: int, addresses: List[AddressDTO]) -> None:
        # Same street means same address, other fields are not compared.
        for address in addresses:
            if not self._account_repo.has_street(user_id, address.street):
                self._account_repo.add_address(user_id, address)

    @transaction.atomic
    def _abandon_attempt(self, order: Order, notes: str) -> None:
        if self._order_repo.revert_to_draft(order.id):
            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.DRAFT,
                notes=notes,
                old_status=OrderStatus.AWAITING_PAYMENT,
            )

    def _callback_url(self, order_id: UUID) -> str:
        return f"{self._callback_base_url}/orders/confirmation?orderId={order_id}"

    # ------------------------------------------------------------------
    # Payment Confirmation Handler
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm_payment(self, order_id: UUID, source: str) -> ConfirmationResult:
        """Move an order to (PROCESSING, PAID) exactly once.

        The transition is a single conditional UPDATE.  Only the caller
        whose update changed the row writes history, emits
        ``PaymentConfirmed`` and decrements stock; every other caller
        gets ``applied=False`` and the current order.

        Raises:
            OrderNotFound: the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), source=source)
        previous_status = order.status

        tracking_number = order.generate_tracking_number()
        applied = self._order_repo.mark_paid_if_pending(
            order.id,
            tracking_number=tracking_number,
            paid_at=timezone.now(),
        )
        order.refresh_from_db()

        if not applied:
            log.info(
                "payment.confirmation_skipped",
                status=order.status,
                payment_status=order.payment_status,
            )
            return ConfirmationResult(order=order, applied=False)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PROCESSING,
            notes=f"Payment confirmed via {source}",
            old_status=previous_status,
        )
        order.add_domain_event(
            PaymentConfirmed(
                aggregate_id=order.id,
                source=source,
                tracking_number=tracking_number,
            )
        )
        self._order_repo.record_events(order)

        for item in order.items.all():
            self._product_repo.decrement_stock(str(item.product_id), item.quantity)

        log.info("payment.confirmed", tracking_number=tracking_number)
        return ConfirmationResult(order=order, applied=True)

    def handle_gateway_event(self, event: Any) -> Optional[ConfirmationResult]:
        """Webhook adapter: confirm the order a ``charge.success`` names.

        Unknown event types, unknown orders and owner mismatches are
        logged and ignored (``None``); the gateway must still get its
        acknowledgement.
        """
        if not isinstance(event, dict):
            logger.warning("payment.webhook_malformed")
            return None

        event_type = event.get("event")
        data = event.get("data") if isinstance(event.get("data"), dict) else {}
        reference = data.get("reference")
        log = logger.bind(event_type=event_type, reference=reference)

        if event_type != CHARGE_SUCCESS_EVENT:
            log.info("payment.webhook_ignored")
            return None

        metadata = normalize_metadata(data.get("metadata"))
        order = None
        if metadata.get("orderId"):
            order = self._order_repo.get_by_id(str(metadata["orderId"]))
        if order is None and reference:
            order = self._order_repo.get_by_reference(str(reference))
        if order is None:
            log.warning("payment.webhook_order_not_found", order_id=metadata.get("orderId"))
            return None

        user_id = metadata.get("userId")
        if user_id is not None and str(user_id) != str(order.user_id):
            log.warning(
                "payment.webhook_owner_mismatch",
                order_id=str(order.id),
                metadata_user_id=str(user_id),
            )
            return None

        return self.confirm_payment(order.id, source="webhook")

    def refresh_payment_status(self, user_id: int, order_id: str) -> Order:
        """Polling adapter keyed by order id.

        Raises:
            OrderNotFound: the order does not exist or is not the caller's.
        """
        order = self._order_repo.get_for_user(order_id, user_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return self._verify_with_gateway(order, order.payment_reference).order

    def verify_payment_reference(self, user_id: int, reference: str) -> Order:
        """Polling adapter keyed by gateway reference.

        Raises:
            OrderNotFound: no order of the caller carries this reference.
        """
        order = self._order_repo.get_by_reference(reference, user_id=user_id)
        if not order:
            raise OrderNotFound(f"No order found for reference {reference}.")
        return self._verify_with_gateway(order, reference).order

    def _verify_with_gateway(
        self, order: Order, reference: Optional[str], source: str = "polling"
    ) -> ConfirmationResult:
        # A failed or inconclusive verification never changes the order.
        if order.payment_status != PaymentStatus.PENDING:
            return ConfirmationResult(order=order, applied=False)
        if not reference or order.payment_attempts == 0 or self._gateway is None:
            return ConfirmationResult(order=order, applied=False)

        log = logger.bind(order_id=str(order.id), reference=reference, source=source)
        try:
            verification = self._gateway.verify_transaction(reference)
        except PaymentGatewayError:
            log.warning("payment.verification_failed", exc_info=True)
            return ConfirmationResult(order=order, applied=False)

        if not verification.succeeded:
            log.info("payment.verification_pending", gateway_status=verification.status)
            return ConfirmationResult(order=order, applied=False)
        if verification.order_id and verification.order_id != str(order.id):
            log.warning(
                "payment.verification_order_mismatch",
                metadata_order_id=verification.order_id,
            )
            return ConfirmationResult(order=order, applied=False)

        return self.confirm_payment(order.id, source=source)

    def reconcile_awaiting_payments(
        self, older_than_minutes: int, limit: int
    ) -> Dict[str, int]:
        """Poll the gateway for orders left in AWAITING_PAYMENT.

        Covers webhooks that never arrived.  Returns counters for the
        caller to log.
        """
        cutoff = timezone.now() - timedelta(minutes=older_than_minutes)
        orders = self._order_repo.list_awaiting_payment(
            updated_before=cutoff, limit=limit
        )
        confirmed = 0
        for order in orders:
            result = self._verify_with_gateway(
                order, order.payment_reference, source="reconciliation"
            )
            if result.applied:
                confirmed += 1

        logger.info(
            "payment.reconciliation_completed",
            checked=len(orders),
            confirmed=confirmed,
        )
        return {"checked": len(orders), "confirmed": confirmed}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, user_id: int, order_id: str) -> Order:
        """Retrieve one of the caller's orders.

        Raises:
            OrderNotFound: if the order does not exist or is not the caller's.
        """
        order = self._order_repo.get_for_user(order_id, user_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, user_id: int):
        """The caller's orders as a queryset, ready for filtering/pagination."""
        return self._order_repo.list_for_user(user_id)


def build_order_service() -> OrderService:
    """Wire the service with the Django repositories and the app's gateway."""
    from django.conf import settings

    from modules.accounts.repositories.django_repository import (
        AccountDjangoRepository,
    )
    from modules.carts.repositories.django_repository import CartDjangoRepository
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.payments.apps import get_payment_gateway
    from modules.products.repositories.django_repository import (
        ProductDjangoRepository,
    )

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        account_repository=AccountDjangoRepository(),
        payment_gateway=get_payment_gateway(),
        callback_base_url=settings.PAYMENT_CALLBACK_URL,
        total_tolerance=settings.ORDER_TOTAL_TOLERANCE,
    )
