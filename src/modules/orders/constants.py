"""Order domain constants.

``VALID_TRANSITIONS`` is the single transition table used by the model,
the state machine, the service and the API.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    CREDIT = "credit", "Credit"


VALID_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = MappingProxyType(
    {
        OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
        OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
        OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
        OrderStatus.DELIVERED: frozenset(),
        OrderStatus.CANCELLED: frozenset(),
    }
)

ALL_STATUSES: FrozenSet[OrderStatus] = frozenset(OrderStatus)

TERMINAL_STATES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

BULK_TRANSITION_MAX_ORDERS = 50

ORDER_NUMBER_MAX_RETRIES = 5


class SideEffectType(models.TextChoices):
    """Downstream actions a transition obliges the order manager to perform."""

    RESERVE_STOCK = "reserve_stock", "Reserve stock"
    CREATE_DELIVERY = "create_delivery", "Create delivery"
    RESTORE_STOCK = "restore_stock", "Restore stock"
    RESTORE_CREDIT = "restore_credit", "Restore credit"
    COMPLETE_FULFILLMENT = "complete_fulfillment", "Complete fulfillment"
    NOTIFY_DELIVERY = "notify_delivery", "Notify delivery"


class SkipReason(models.TextChoices):
    """Why a bulk transition left an order untouched."""

    INVALID_TRANSITION = "invalid_transition", "Invalid transition"
    ORDER_NOT_FOUND = "order_not_found", "Order not found"
    CONFLICT = "conflict", "Concurrent status change"
    INSUFFICIENT_STOCK = "insufficient_stock", "Insufficient stock"
