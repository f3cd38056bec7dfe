"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.payload.get("order_number"),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.payload.get("old_status"),
            new_status=event.payload.get("new_status"),
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            reason=event.payload.get("reason"),
        )


class OrderDeliveredHandler(IEventHandler[OrderDelivered]):
    """Hands the delivery notice to Celery."""

    def handle(self, event: OrderDelivered) -> None:
        from modules.orders.tasks import notify_delivery_completed

        notify_delivery_completed.delay(str(event.aggregate_id), event.payload)
        logger.info("order.event.delivered", order_id=str(event.aggregate_id))


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_delivered_handler = OrderDeliveredHandler()
