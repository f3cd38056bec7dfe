"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    BULK_TRANSITION_MAX_ORDERS,
    OrderStatus,
    PaymentMethod,
)
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.state_machine import valid_transitions

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order placement request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates a retailer's order placement payload."""

    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.CASH
    )
    delivery_address = serializers.CharField(required=False, default="", allow_blank=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderStatusSerializer(serializers.Serializer):
    """Validates a single status change; cancellation has its own endpoint."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate_status(self, value: str) -> str:
        if value == OrderStatus.CANCELLED:
            raise serializers.ValidationError(
                "Use the cancel endpoint to cancel an order."
            )
        return value


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class BulkStatusUpdateSerializer(serializers.Serializer):
    order_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=BULK_TRANSITION_MAX_ORDERS,
    )
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

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
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_id",
            "notes",
            "bulk",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    retailer_name = serializers.CharField(source="retailer.business_name", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "retailer_id",
            "retailer_name",
            "status",
            "payment_method",
            "total_amount",
            "delivery_address",
            "notes",
            "cancellation_reason",
            "delivered_at",
            "created_at",
            "updated_at",
            "allowed_transitions",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_allowed_transitions(self, obj: Order) -> list:
        return sorted_statuses(valid_transitions(obj.status))


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "retailer_id",
            "status",
            "payment_method",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields


def sorted_statuses(statuses) -> list:
    """Status values in lifecycle order."""
    return [status.value for status in OrderStatus if status in statuses]
