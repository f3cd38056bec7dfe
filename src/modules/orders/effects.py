"""Carries out the side effects a status transition lists.

Each ``SideEffectType`` maps to one handler.  Handlers run inside the
caller's transaction and mutate the locked ``Order`` in memory; the
caller persists it afterwards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict

import structlog
from django.utils import timezone

from modules.orders.constants import SideEffectType
from modules.orders.dtos import SideEffect, TransitionResult
from modules.orders.events import OrderDelivered

if TYPE_CHECKING:
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.models import Order
    from modules.products.repositories.interfaces import IProductRepository
    from modules.retailers.repositories.interfaces import IRetailerRepository

logger = structlog.get_logger(__name__)

EffectHandler = Callable[["Order", SideEffect], None]


class SideEffectExecutor:
    def __init__(
        self,
        product_repository: IProductRepository,
        retailer_repository: IRetailerRepository,
        delivery_repository: IDeliveryRepository,
    ) -> None:
        self._product_repo = product_repository
        self._retailer_repo = retailer_repository
        self._delivery_repo = delivery_repository
        self._handlers: Dict[SideEffectType, EffectHandler] = {
            SideEffectType.RESERVE_STOCK: self._reserve_stock,
            SideEffectType.CREATE_DELIVERY: self._create_delivery,
            SideEffectType.RESTORE_STOCK: self._restore_stock,
            SideEffectType.RESTORE_CREDIT: self._restore_credit,
            SideEffectType.COMPLETE_FULFILLMENT: self._complete_fulfillment,
            SideEffectType.NOTIFY_DELIVERY: self._notify_delivery,
        }

    def execute(self, order: Order, result: TransitionResult) -> None:
        """Run every effect of *result* against *order*, in order.

        Raises:
            InsufficientStock: a reservation could not be satisfied.
        """
        for effect in result.side_effects:
            self._handlers[effect.type](order, effect)
            logger.debug(
                "order.side_effect_executed",
                order_id=str(order.id),
                effect=effect.type.value,
            )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _reserve_stock(self, order: Order, effect: SideEffect) -> None:
        if order.stock_reserved:
            logger.info("order.stock_already_reserved", order_id=str(order.id))
            return
        self._product_repo.reserve(
            (line.product_id, line.quantity) for line in effect.items
        )
        order.stock_reserved = True

    def _restore_stock(self, order: Order, effect: SideEffect) -> None:
        # Orders cancelled before confirmation never took stock.
        if not order.stock_reserved:
            logger.info("order.stock_restore_skipped", order_id=str(order.id))
            return
        self._product_repo.release(
            (line.product_id, line.quantity) for line in effect.items
        )
        order.stock_reserved = False

    def _restore_credit(self, order: Order, effect: SideEffect) -> None:
        self._retailer_repo.restore_credit(effect.retailer_id, effect.amount)

    def _create_delivery(self, order: Order, effect: SideEffect) -> None:
        self._delivery_repo.create_for_order(order)

    def _complete_fulfillment(self, order: Order, effect: SideEffect) -> None:
        order.delivered_at = timezone.now()
        self._delivery_repo.mark_delivered(order.id)

    def _notify_delivery(self, order: Order, effect: SideEffect) -> None:
        order.add_domain_event(
            OrderDelivered(
                aggregate_id=order.id,
                payload={
                    "order_number": order.order_number,
                    "retailer_id": str(effect.retailer_id) if effect.retailer_id else None,
                },
            )
        )
