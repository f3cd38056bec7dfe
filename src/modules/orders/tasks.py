"""Asynchronous tasks for the orders module."""

from typing import Any, Dict, Optional

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="orders.notify_delivery_completed")
def notify_delivery_completed(order_id: str, payload: Optional[Dict[str, Any]] = None):
    """Tell the retailer its order arrived.

    Records the notice in the log stream. The same ``OrderDelivered`` row
    also leaves through the outbox relay for downstream channels.
    """
    payload = payload or {}
    logger.info(
        "order.delivery_notice_sent",
        order_id=order_id,
        order_number=payload.get("order_number"),
        retailer_id=payload.get("retailer_id"),
    )
    return {"status": "sent", "order_id": order_id}
