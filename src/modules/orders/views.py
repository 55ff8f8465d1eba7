"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes.  Anything unexpected propagates to
``api_exception_handler`` which logs it and answers 500.

The payment webhook is the one exception: after the signature is
verified, every error is logged and the gateway still gets a 200.
"""

from __future__ import annotations

import json

import structlog
from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.accounts.dtos import AddressDTO, ProfileUpdateDTO
from modules.accounts.exceptions import UserNotFound
from modules.orders.dtos import CheckoutDTO, CreateOrderDTO, CreateOrderItemDTO
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
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    CheckoutSerializer,
    CreateOrderSerializer,
    OrderCreatedSerializer,
    OrderListSerializer,
    OrderSerializer,
)
from modules.orders.services import build_order_service
from modules.payments.exceptions import PaymentGatewayUnavailable
from modules.payments.signatures import is_valid_signature
from modules.products.exceptions import ProductNotFound

logger = structlog.get_logger(__name__)


def _error(detail: str, code: int, **extra) -> Response:
    return Response({"success": False, "detail": detail, **extra}, status=code)


def _order_not_found() -> Response:
    return _error("Order not found.", status.HTTP_404_NOT_FOUND)


class OrderViewSet(GenericViewSet):
    """ViewSet for the order workflow.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scope per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action == "checkout":
            throttle_scope = "checkout"
        elif self.action in {"list", "retrieve", "payment_status", "verify"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders(self.request.user.pk)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)
        data = create_serializer.validated_data

        try:
            dto = CreateOrderDTO(
                user_id=request.user.pk,
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                total_amount=data.get("total_amount"),
                notes=data.get("notes", ""),
            )
        except PydanticValidationError as exc:
            return _error(
                "Invalid order data.",
                status.HTTP_400_BAD_REQUEST,
                errors=exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            )

        try:
            order = self._service.create_order(dto)
        except ProductNotFound as exc:
            return _error(str(exc), status.HTTP_404_NOT_FOUND)
        except InactiveProduct as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except InsufficientStock as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except TotalAmountMismatch as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "success": True,
                "message": "Order created successfully",
                "order": OrderCreatedSerializer(order).data,
            },
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment status, date range, total range) is
        handled by ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(request.user.pk, pk)
        except OrderNotFound:
            return _order_not_found()
        return Response({"success": True, "order": OrderSerializer(order).data})

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @action(detail=False, methods=["put"])
    def checkout(self, request: Request) -> Response:
        """PUT /api/v1/orders/checkout/"""
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        profile = data.get("profile")
        try:
            dto = CheckoutDTO(
                user_id=request.user.pk,
                order_id=data["order_id"],
                shipping_address=AddressDTO(**data["shipping_address"]),
                billing_address=AddressDTO(**data["billing_address"]),
                payment_method=data["payment_method"],
                email=data["email"],
                notes=data.get("notes", ""),
                profile=ProfileUpdateDTO(**profile) if profile else None,
            )
        except PydanticValidationError as exc:
            return _error(
                "Invalid checkout data.",
                status.HTTP_400_BAD_REQUEST,
                errors=exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            )

        try:
            result = self._service.checkout(dto)
        except (InvalidPaymentMethod, MissingTotalAmount, InvalidOrderStatus) as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except OrderNotFound:
            return _order_not_found()
        except UserNotFound:
            return _error("User not found.", status.HTTP_404_NOT_FOUND)
        except OrderAlreadyPaid as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except OutOfStock as exc:
            return _error(
                str(exc),
                status.HTTP_409_CONFLICT,
                out_of_stock_items=exc.items,
            )
        except PaymentInitializationFailed:
            return _error(
                "Failed to initialize payment.", status.HTTP_400_BAD_REQUEST
            )
        except PaymentGatewayUnavailable:
            return _error(
                "Payment gateway is temporarily unavailable.",
                status.HTTP_400_BAD_REQUEST,
                retryable=True,
            )

        return Response(
            {
                "success": True,
                "message": "Checkout initialized",
                "payment_url": result.payment_url,
                "reference": result.reference,
                "payment_method": result.payment_method,
                "attempt_number": result.attempt_number,
            }
        )

    # ------------------------------------------------------------------
    # Payment status polling
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="status")
    def payment_status(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/status/"""
        try:
            order = self._service.refresh_payment_status(request.user.pk, pk)
        except OrderNotFound:
            return _order_not_found()
        return Response({"success": True, "order": OrderSerializer(order).data})

    @action(detail=False, methods=["get"], url_path=r"verify/(?P<reference>[^/]+)")
    def verify(self, request: Request, reference: str) -> Response:
        """GET /api/v1/orders/verify/{reference}/"""
        try:
            order = self._service.verify_payment_reference(request.user.pk, reference)
        except OrderNotFound:
            return _order_not_found()
        return Response({"success": True, "order": OrderSerializer(order).data})


class PaymentWebhookView(APIView):
    """POST /api/v1/webhooks/payment/

    Authenticated by the HMAC signature header instead of a JWT.  Not
    throttled: a signed delivery is always acknowledged with 200.
    """

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        body = request.body
        signature = request.headers.get(settings.PAYMENT_GATEWAY_SIGNATURE_HEADER)
        if not is_valid_signature(
            body, signature, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET
        ):
            logger.warning("payment.webhook_invalid_signature")
            return Response(
                {"status": "error", "detail": "Invalid signature."},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        try:
            event = json.loads(body)
            build_order_service().handle_gateway_event(event)
        except Exception:
            # The gateway retries non-2xx responses forever.
            logger.exception("payment.webhook_processing_failed")

        return Response({"status": "received"})
