"""Django ORM implementation of the Retailer repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.retailers.exceptions import CreditLimitExceeded, RetailerNotFound
from modules.retailers.models import Retailer
from modules.retailers.repositories.interfaces import IRetailerRepository

logger = structlog.get_logger(__name__)


class RetailerDjangoRepository(IRetailerRepository):
    def get_by_id(self, id: str) -> Optional[Retailer]:
        try:
            return Retailer.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Retailer) -> Retailer:
        entity.save()
        return entity

    @transaction.atomic
    def restore_credit(self, retailer_id: UUID, amount: Decimal) -> Retailer:
        retailer = Retailer.objects.select_for_update().filter(id=retailer_id).first()
        if retailer is None:
            raise RetailerNotFound(f"Retailer {retailer_id} not found.")
        retailer.current_balance += amount
        retailer.save(update_fields=["current_balance"])
        logger.info(
            "retailer.credit_restored",
            retailer_id=str(retailer_id),
            amount=str(amount),
            current_balance=str(retailer.current_balance),
        )
        return retailer

    @transaction.atomic
    def charge_credit(self, retailer_id: UUID, amount: Decimal) -> Retailer:
        retailer = Retailer.objects.select_for_update().filter(id=retailer_id).first()
        if retailer is None:
            raise RetailerNotFound(f"Retailer {retailer_id} not found.")
        if amount > retailer.available_credit:
            raise CreditLimitExceeded(
                f"Retailer {retailer_id}: order total {amount}, "
                f"available credit {retailer.available_credit}."
            )
        retailer.current_balance -= amount
        retailer.save(update_fields=["current_balance"])
        logger.info(
            "retailer.credit_charged",
            retailer_id=str(retailer_id),
            amount=str(amount),
            current_balance=str(retailer.current_balance),
        )
        return retailer
