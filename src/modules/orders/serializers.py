"""Request and response shapes of the order endpoints.

Input serializers only check the wire format.  Views turn their output
into the pydantic DTOs of ``dtos.py`` before calling ``OrderService``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.serializers import AddressInputSerializer, ProfileInputSerializer
from modules.orders.models import Order, OrderItem, OrderStatusHistory


class CreateOrderItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    total_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CheckoutSerializer(serializers.Serializer):
    """Validates the checkout request payload.

    ``payment_method`` is accepted as free text; the service rejects
    unsupported methods with a domain error.
    """

    order_id = serializers.UUIDField()
    shipping_address = AddressInputSerializer()
    billing_address = AddressInputSerializer()
    payment_method = serializers.CharField(max_length=20)
    email = serializers.EmailField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    profile = ProfileInputSerializer(required=False)


class OrderItemSerializer(serializers.ModelSerializer):
    """Line item with the product name and SKU alongside the price snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "payment_status",
            "payment_method",
            "payment_reference",
            "payment_attempts",
            "total_amount",
            "shipping_address",
            "billing_address",
            "notes",
            "tracking_number",
            "is_confirmed",
            "paid_at",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """List row: no history, no addresses."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_status",
            "total_amount",
            "tracking_number",
            "created_at",
            "items",
        ]
        read_only_fields = fields


class OrderCreatedSerializer(serializers.ModelSerializer):
    """Shape of the ``order`` object returned by order creation."""

    order_id = serializers.UUIDField(source="id", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = ["order_id", "order_number", "items", "total_amount"]
        read_only_fields = fields
