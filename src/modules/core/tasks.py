"""Asynchronous tasks for the core module."""

from typing import Callable

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)

DEFAULT_RELAY_BATCH_SIZE = 100


def log_publisher(event: OutboxEvent) -> None:
    """Default sink: hands the event to the log stream for shipping."""
    logger.info(
        "outbox.relayed",
        event_id=str(event.id),
        event_type=event.event_type,
        topic=event.topic,
        aggregate_id=event.aggregate_id,
        payload=event.payload,
    )


def get_outbox_publisher() -> Callable[[OutboxEvent], None]:
    path = getattr(settings, "OUTBOX_PUBLISHER", None)
    return import_string(path) if path else log_publisher


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = DEFAULT_RELAY_BATCH_SIZE):
    """Publish pending outbox rows in ``created_at`` order.

    Each row is marked ``PUBLISHED`` once the publisher accepts it, or
    ``FAILED`` with the error otherwise; one failure does not stop the batch.
    """
    publish = get_outbox_publisher()
    published = failed = 0

    with transaction.atomic():
        pending = list(
            OutboxEvent.objects.select_for_update(skip_locked=True)
            .filter(status=EventStatus.PENDING)
            .order_by("created_at", "id")[:batch_size]
        )
        for event in pending:
            try:
                publish(event)
            except Exception as exc:
                logger.exception(
                    "outbox.relay_failed", event_id=str(event.id), event_type=event.event_type
                )
                event.mark_as_failed(str(exc))
                failed += 1
                continue
            event.mark_as_published()
            published += 1

    if pending:
        logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
