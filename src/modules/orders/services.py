"""Order service layer (Use Cases).

Orchestrates order placement and status management.  All write
operations are atomic; the service defines the unit-of-work boundary.

Every status change follows the same path:

1. lock the order row (``SELECT FOR UPDATE``);
2. validate with the state machine (``apply_transition``);
3. commit the new status with a compare-and-set on the old one;
4. carry out the side effects the transition lists;
5. append a status history row;
6. queue domain events in the outbox and publish them after commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.orders.constants import OrderStatus, PaymentMethod, SkipReason
from modules.orders.dtos import (
    BulkTransitionResult,
    OrderSnapshot,
    SkippedOrder,
    TransitionResult,
)
from modules.orders.effects import SideEffectExecutor
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import (
    InactiveProduct,
    InactiveRetailer,
    OrderNotFound,
    StatusConflict,
)
from modules.orders.state_machine import apply_bulk_transition, apply_transition
from modules.products.exceptions import InsufficientStock, ProductNotFound
from modules.retailers.exceptions import RetailerNotFound
from modules.retailers.models import RetailerStatus
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.dtos import BulkStatusUpdateDTO, CreateOrderDTO, StatusBreakdownDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.retailers.repositories.interfaces import IRetailerRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        retailer_repository: IRetailerRepository,
        delivery_repository: IDeliveryRepository,
        bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._retailer_repo = retailer_repository
        self._effects = SideEffectExecutor(
            product_repository, retailer_repository, delivery_repository
        )
        self._bus = bus or event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: str = "") -> Order:
        """Place a pending order at catalogue prices.

        Stock is reserved on confirmation, not here.  Credit orders charge
        the retailer's balance immediately.

        Raises:
            RetailerNotFound: retailer does not exist.
            InactiveRetailer: retailer is not active.
            ProductNotFound: a product does not exist.
            InactiveProduct: a product is not sold any more.
            CreditLimitExceeded: credit order over the available credit.
        """
        log = logger.bind(retailer_id=str(dto.retailer_id))
        log.info("order.creation_started")

        retailer = self._retailer_repo.get_by_id(str(dto.retailer_id))
        if not retailer:
            raise RetailerNotFound(f"Retailer {dto.retailer_id} not found.")
        if retailer.status != RetailerStatus.ACTIVE:
            raise InactiveRetailer(f"Retailer {dto.retailer_id} is not active.")

        repo_items = []
        for item_dto in dto.items:
            product = self._product_repo.get_by_id(str(item_dto.product_id))
            if not product:
                raise ProductNotFound(f"Product {item_dto.product_id} not found.")
            if not product.is_active:
                raise InactiveProduct(f"Product {item_dto.product_id} is inactive.")
            repo_items.append(
                {
                    "product_id": product.id,
                    "quantity": item_dto.quantity,
                    "unit_price": product.price,
                }
            )

        order = self._order_repo.create(
            {
                "retailer_id": dto.retailer_id,
                "payment_method": dto.payment_method,
                "delivery_address": dto.delivery_address or retailer.address,
                "notes": dto.notes,
                "items": repo_items,
            }
        )

        if order.payment_method == PaymentMethod.CREDIT:
            self._retailer_repo.charge_credit(retailer.id, order.total_amount)

        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PENDING,
            actor_id=actor,
            notes="Order created",
        )

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                payload={
                    "order_number": order.order_number,
                    "retailer_id": str(order.retailer_id),
                    "total_amount": str(order.total_amount),
                },
            )
        )
        self._persist(order)

        log.info("order.created", order_id=str(order.id), order_number=order.order_number)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID,
        new_status: str,
        actor: str,
        notes: str = "",
    ) -> Order:
        """Move an order to *new_status*.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: *new_status* is not reachable.
            StatusConflict: the status changed under us.
            InsufficientStock: confirmation could not reserve stock.
        """
        order = self._lock(order_id)
        result = apply_transition(
            OrderSnapshot.from_entity(order), new_status, actor, notes or None
        )
        self._commit_transition(order, result)
        return self._order_repo.get_by_id(str(order_id))

    @transaction.atomic
    def cancel_order(
        self,
        order_id: UUID,
        actor: str,
        reason: str,
        notes: str = "",
    ) -> Order:
        """Cancel an order, giving back its stock and credit.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the order can no longer be cancelled.
            StatusConflict: the status changed under us.
        """
        order = self._lock(order_id)
        history_notes = f"{reason}. {notes}".strip() if notes else reason
        result = apply_transition(
            OrderSnapshot.from_entity(order), OrderStatus.CANCELLED, actor, history_notes
        )
        order.cancellation_reason = reason
        self._commit_transition(order, result)
        return self._order_repo.get_by_id(str(order_id))

    def bulk_update_status(
        self, dto: BulkStatusUpdateDTO, actor: str
    ) -> BulkTransitionResult:
        """Move up to 50 orders to the same status.

        Orders are evaluated independently and each success is committed
        in its own savepoint, so one failing order never undoes another.
        """
        log = logger.bind(target_status=dto.status, actor=actor, requested=len(dto.order_ids))
        position = {order_id: index for index, order_id in enumerate(dto.order_ids)}

        with transaction.atomic():
            locked = {order.id: order for order in self._order_repo.get_many_for_update(dto.order_ids)}
            skipped: List[SkippedOrder] = [
                SkippedOrder(
                    order_id=order_id,
                    reason=SkipReason.ORDER_NOT_FOUND,
                    detail=f"Order {order_id} not found.",
                )
                for order_id in dto.order_ids
                if order_id not in locked
            ]

            evaluation = apply_bulk_transition(
                [OrderSnapshot.from_entity(locked[i]) for i in dto.order_ids if i in locked],
                dto.status,
                actor,
                dto.notes or None,
            )
            skipped.extend(evaluation.skipped)

            succeeded: List[UUID] = []
            results: List[TransitionResult] = []
            for result in evaluation.results:
                reason = self._commit_in_savepoint(locked[result.order_id], result)
                if reason is None:
                    succeeded.append(result.order_id)
                    results.append(result)
                else:
                    skipped.append(reason)

        skipped.sort(key=lambda s: position[s.order_id])
        log.info(
            "order.bulk_status_updated",
            succeeded=len(succeeded),
            skipped=len(skipped),
        )
        return BulkTransitionResult(
            target=evaluation.target,
            succeeded=tuple(succeeded),
            skipped=tuple(skipped),
            results=tuple(results),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, retailer_id: Optional[UUID] = None) -> Order:
        """Retrieve a single order, optionally scoped to one retailer.

        Raises:
            OrderNotFound: missing, or owned by another retailer.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (retailer_id is not None and order.retailer_id != retailer_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        return self._order_repo.list(filters)

    def status_breakdown(self, retailer_id: Optional[UUID] = None) -> StatusBreakdownDTO:
        return self._order_repo.status_breakdown(retailer_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock(self, order_id: UUID) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _commit_in_savepoint(
        self, order: Order, result: TransitionResult
    ) -> Optional[SkippedOrder]:
        try:
            with transaction.atomic():
                self._commit_transition(order, result, bulk=True)
        except StatusConflict as exc:
            return SkippedOrder(order_id=order.id, reason=SkipReason.CONFLICT, detail=str(exc))
        except InsufficientStock as exc:
            return SkippedOrder(
                order_id=order.id, reason=SkipReason.INSUFFICIENT_STOCK, detail=str(exc)
            )
        return None

    def _commit_transition(
        self, order: Order, result: TransitionResult, bulk: bool = False
    ) -> None:
        log = logger.bind(
            order_id=str(order.id),
            old_status=result.old_status,
            new_status=result.new_status.value,
            actor=result.actor,
        )

        order.status = result.new_status
        self._order_repo.commit_status(order, expected_status=result.old_status)
        self._effects.execute(order, result)

        self._order_repo.add_history(
            order_id=order.id,
            new_status=result.new_status,
            old_status=result.old_status,
            actor_id=result.actor,
            notes=result.notes or "",
            bulk=bulk,
        )

        payload = {
            "order_number": order.order_number,
            "old_status": result.old_status.value if result.old_status else None,
            "new_status": result.new_status.value,
            "actor": result.actor,
        }
        order.add_domain_event(OrderStatusChanged(aggregate_id=order.id, payload=payload))
        if result.new_status == OrderStatus.CANCELLED:
            order.add_domain_event(
                OrderCancelled(
                    aggregate_id=order.id,
                    payload={**payload, "reason": order.cancellation_reason},
                )
            )
        self._persist(order)

        log.info("order.status_updated", side_effects=[t.value for t in result.side_effect_types])

    def _persist(self, order: Order) -> None:
        """Save *order*; its events go to the outbox now and the bus after commit."""
        events = order.domain_events
        self._order_repo.save(order)
        if events:
            transaction.on_commit(lambda: self._bus.publish_all(events))
