"""Delivery-tracking entries.

A delivery is opened automatically when its order is confirmed and closed
when the order is delivered.  ``tracking_updates`` is an append-only list
of ``{status, timestamp, notes}`` entries.
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal

from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ASSIGNED = "assigned", "Assigned"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"


class Delivery(BaseModel):
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="delivery",
    )
    delivery_number = models.CharField(max_length=20, unique=True, editable=False)
    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    delivery_address = models.TextField(blank=True, default="")
    cash_to_collect = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    driver_subject_id = models.CharField(max_length=255, blank=True, default="")
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)
    tracking_updates = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "deliveries"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="deliveries_status_idx"),
        ]

    @staticmethod
    def generate_delivery_number() -> str:
        """``DEL-<6 digits of epoch ms>-<4 random chars>``."""
        millis = str(int(timezone.now().timestamp() * 1000))[-6:]
        suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
        return f"DEL-{millis}-{suffix}"

    def add_tracking_update(self, status: str, notes: str = "") -> None:
        self.tracking_updates = [
            *self.tracking_updates,
            {"status": status, "timestamp": timezone.now().isoformat(), "notes": notes},
        ]

    def save(self, *args, **kwargs) -> None:
        if not self.delivery_number:
            self.delivery_number = self.generate_delivery_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.delivery_number} ({self.status})"
