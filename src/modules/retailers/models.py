"""Retailer accounts buying on the marketplace.

``current_balance`` goes negative as credit orders are placed; cancelling
a credit order gives the amount back.  ``credit_limit`` bounds how far
negative the balance may go.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class RetailerStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"


class Retailer(BaseModel):
    business_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    address = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=RetailerStatus.choices,
        default=RetailerStatus.PENDING,
    )
    credit_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    current_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "retailers"
        ordering = ["business_name"]

    @property
    def available_credit(self) -> Decimal:
        return self.credit_limit + self.current_balance

    def __str__(self) -> str:
        return self.business_name
