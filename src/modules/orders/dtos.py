"""Order DTOs.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models:

- ``OrderSnapshot``: the facts the state machine reads from an order.
- ``SideEffect`` / ``TransitionResult``: what a legal transition produces.
- ``SkippedOrder`` / ``BulkTransitionResult``: per-order bulk breakdown.
- ``CreateOrderDTO`` / ``BulkStatusUpdateDTO``: validated service input.
- ``StatusBreakdownDTO``: order counts and revenue per status.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import (
    BULK_TRANSITION_MAX_ORDERS,
    OrderStatus,
    PaymentMethod,
    SideEffectType,
    SkipReason,
)

if TYPE_CHECKING:
    from modules.orders.models import Order


# ---------------------------------------------------------------------------
# State machine input
# ---------------------------------------------------------------------------


class OrderLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int


class OrderSnapshot(BaseModel):
    """Immutable view of an order at validation time.

    ``status`` is ``None`` for an order that has not been given one yet.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    status: Optional[OrderStatus] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    total_amount: Decimal = Decimal("0.00")
    retailer_id: Optional[UUID] = None
    items: Tuple[OrderLineDTO, ...] = ()

    @classmethod
    def from_entity(cls, order: Order) -> OrderSnapshot:
        """Assumes ``items`` is prefetched."""
        return cls(
            id=order.id,
            status=order.status or None,
            payment_method=order.payment_method,
            total_amount=order.total_amount,
            retailer_id=order.retailer_id,
            items=tuple(
                OrderLineDTO(product_id=item.product_id, quantity=item.quantity)
                for item in order.items.all()
            ),
        )


# ---------------------------------------------------------------------------
# State machine output
# ---------------------------------------------------------------------------


class SideEffect(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SideEffectType
    items: Tuple[OrderLineDTO, ...] = ()
    retailer_id: Optional[UUID] = None
    amount: Optional[Decimal] = None


class TransitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    old_status: Optional[OrderStatus]
    new_status: OrderStatus
    actor: str
    notes: Optional[str] = None
    side_effects: Tuple[SideEffect, ...] = ()

    @property
    def side_effect_types(self) -> List[SideEffectType]:
        return [effect.type for effect in self.side_effects]


class SkippedOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    reason: SkipReason
    detail: str = ""


class BulkTransitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: str
    succeeded: Tuple[UUID, ...] = ()
    skipped: Tuple[SkippedOrder, ...] = ()
    results: Tuple[TransitionResult, ...] = ()


# ---------------------------------------------------------------------------
# Service input / output
# ---------------------------------------------------------------------------


class BulkStatusUpdateDTO(BaseModel):
    """Validates a bulk request: 1..50 order ids, duplicates collapsed."""

    model_config = ConfigDict(frozen=True)

    order_ids: Tuple[UUID, ...]
    status: str
    notes: str = ""

    @field_validator("order_ids")
    @classmethod
    def order_ids_within_bounds(cls, v: Tuple[UUID, ...]) -> Tuple[UUID, ...]:
        unique = tuple(dict.fromkeys(v))
        if not unique:
            raise ValueError("At least one order id is required.")
        if len(unique) > BULK_TRANSITION_MAX_ORDERS:
            raise ValueError(
                f"At most {BULK_TRANSITION_MAX_ORDERS} orders per bulk request."
            )
        return unique


class StatusBreakdownDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_orders: int
    total_revenue: Decimal
    by_status: Dict[str, int]


class CreateOrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Order placement request; prices come from the catalogue."""

    model_config = ConfigDict(frozen=True)

    retailer_id: UUID
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.CASH
    delivery_address: str = ""
    notes: str = ""

    @field_validator("items")
    @classmethod
    def items_must_be_unique_and_present(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        product_ids = [item.product_id for item in v]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return v
