"""Django ORM implementation of the Order store.

Row locks use ``select_for_update()``; the status write itself is a
conditional ``UPDATE ... WHERE status = <expected>`` so a concurrent
writer that slipped past the lock (e.g. a raw update) is detected.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, QuerySet, Sum
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.dtos import StatusBreakdownDTO
from modules.orders.exceptions import StatusConflict
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    @staticmethod
    def _base_queryset() -> QuerySet:
        return Order.objects.select_related("retailer").prefetch_related(
            "items__product", "status_history"
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            retailer_id=data["retailer_id"],
            payment_method=data["payment_method"],
            delivery_address=data.get("delivery_address", ""),
            notes=data.get("notes", ""),
            status=OrderStatus.PENDING,
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info("order.created", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with retailer, items and history eager-loaded."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_many_for_update(self, ids: Iterable[UUID]) -> List[Order]:
        return list(
            Order.objects.select_for_update()
            .prefetch_related("items")
            .filter(id__in=list(ids))
            .order_by("id")
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def commit_status(self, order: Order, expected_status: Optional[str]) -> Order:
        updated = Order.objects.filter(id=order.id, status=expected_status or "").update(
            status=order.status,
            updated_at=timezone.now(),
        )
        if updated != 1:
            logger.warning(
                "order.status_conflict",
                order_id=str(order.id),
                expected_status=expected_status,
                new_status=order.status,
            )
            raise StatusConflict(
                f"Order {order.id} is no longer {expected_status}."
            )
        return order

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and move its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.record(event, topic=OUTBOX_TOPIC)
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str] = None,
        actor_id: str = "",
        notes: str = "",
        bulk: bool = False,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            actor_id=actor_id,
            notes=notes,
            bulk=bulk,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
            actor_id=actor_id,
        )
        return history

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def status_breakdown(self, retailer_id: Optional[UUID] = None) -> StatusBreakdownDTO:
        queryset = Order.objects.all()
        if retailer_id is not None:
            queryset = queryset.filter(retailer_id=retailer_id)

        rows = (
            queryset.order_by()
            .values("status")
            .annotate(count=Count("id"), revenue=Sum("total_amount"))
        )
        by_status = {status.value: 0 for status in OrderStatus}
        total_revenue = Decimal("0.00")
        for row in rows:
            by_status[row["status"]] = row["count"]
            total_revenue += row["revenue"] or Decimal("0.00")

        return StatusBreakdownDTO(
            total_orders=sum(by_status.values()),
            total_revenue=total_revenue,
            by_status=by_status,
        )
