"""Django ORM implementation of the Delivery repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.utils import timezone

from modules.deliveries.models import Delivery, DeliveryStatus
from modules.deliveries.repositories.interfaces import IDeliveryRepository
from modules.orders.constants import PaymentMethod
from modules.orders.models import Order

logger = structlog.get_logger(__name__)

DELIVERY_NUMBER_MAX_RETRIES = 5


class DeliveryDjangoRepository(IDeliveryRepository):
    def get_by_id(self, id: str) -> Optional[Delivery]:
        try:
            return Delivery.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Delivery) -> Delivery:
        entity.save()
        return entity

    def create_for_order(self, order: Order) -> Delivery:
        existing = Delivery.objects.filter(order_id=order.id).first()
        if existing is not None:
            return existing

        cash_to_collect = (
            order.total_amount
            if order.payment_method == PaymentMethod.CASH
            else Decimal("0.00")
        )
        delivery = Delivery(
            order=order,
            delivery_number=self._unique_number(),
            delivery_address=order.delivery_address,
            cash_to_collect=cash_to_collect,
        )
        delivery.add_tracking_update(
            DeliveryStatus.PENDING,
            "Delivery created automatically when order confirmed",
        )
        delivery.save()
        logger.info(
            "delivery.created",
            order_id=str(order.id),
            delivery_number=delivery.delivery_number,
        )
        return delivery

    def mark_delivered(self, order_id: UUID) -> Optional[Delivery]:
        delivery = Delivery.objects.select_for_update().filter(order_id=order_id).first()
        if delivery is None:
            logger.warning("delivery.missing_on_completion", order_id=str(order_id))
            return None
        delivery.status = DeliveryStatus.DELIVERED
        delivery.delivered_at = timezone.now()
        delivery.add_tracking_update(DeliveryStatus.DELIVERED, "Order delivered")
        delivery.save(update_fields=["status", "delivered_at", "tracking_updates"])
        logger.info("delivery.completed", order_id=str(order_id))
        return delivery

    @staticmethod
    def _unique_number() -> str:
        for _ in range(DELIVERY_NUMBER_MAX_RETRIES):
            candidate = Delivery.generate_delivery_number()
            if not Delivery.objects.filter(delivery_number=candidate).exists():
                return candidate
        raise RuntimeError(
            f"Failed to generate unique delivery_number after "
            f"{DELIVERY_NUMBER_MAX_RETRIES} attempts"
        )
