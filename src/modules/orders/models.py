"""Order, OrderItem and OrderStatusHistory models.

- ``status`` only changes through ``OrderService`` (validated by the state
  machine, committed with a compare-and-set on the previous status).
- Every status change appends an ``OrderStatusHistory`` row.
- ``stock_reserved`` records whether the order currently holds stock, so
  a cancellation only gives back what was actually taken.
- ``OrderItem.subtotal`` is always ``quantity * unit_price``.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
)
from modules.orders.state_machine import can_transition
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is generated on first save
    (format: ``ORD-YYYYMMDD-XXXXXX``).
    """

    order_number: models.CharField = models.CharField(max_length=20, unique=True, editable=False)
    retailer: models.ForeignKey = models.ForeignKey(
        "retailers.Retailer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_method: models.CharField = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    delivery_address: models.TextField = models.TextField(blank=True, default="")
    notes: models.TextField = models.TextField(blank=True, default="")
    cancellation_reason: models.TextField = models.TextField(blank=True, default="")
    stock_reserved: models.BooleanField = models.BooleanField(default=False)
    delivered_at: models.DateTimeField = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return can_transition(self.status, new_status)

    @staticmethod
    def generate_order_number() -> str:
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item; ``unit_price`` is the catalogue price at order time."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, editable=False
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.unit_price:
            self.unit_price = self.product.price
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product} x{self.quantity} (${self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status changes.

    ``actor_id`` is the identity-provider subject of whoever made the
    change; empty means the system did.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(max_length=20, choices=OrderStatus.choices)
    actor_id: models.CharField = models.CharField(max_length=255, blank=True, default="")
    notes: models.TextField = models.TextField(blank=True, default="")
    bulk: models.BooleanField = models.BooleanField(default=False)

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
