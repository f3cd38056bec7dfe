"""Order status state machine.

Pure decision functions over ``OrderSnapshot``s: they validate a requested
status change against ``VALID_TRANSITIONS`` and list the side effects the
order manager must carry out.  Nothing here touches the database; callers
commit the new status and perform the effects.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional, Union

import structlog

from modules.orders.constants import (
    ALL_STATUSES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    SideEffectType,
    SkipReason,
)
from modules.orders.dtos import (
    BulkTransitionResult,
    OrderSnapshot,
    SideEffect,
    SkippedOrder,
    TransitionResult,
)
from modules.orders.exceptions import InvalidTransition

logger = structlog.get_logger(__name__)

StatusLike = Union[OrderStatus, str, None]


def _coerce_status(value: StatusLike) -> Optional[OrderStatus]:
    if value is None or value == "":
        return None
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def valid_transitions(current: StatusLike) -> FrozenSet[OrderStatus]:
    """Statuses reachable from *current*.

    An order without a status may take any status; an unrecognised status
    reaches nothing.
    """
    if current is None or current == "":
        return ALL_STATUSES
    status = _coerce_status(current)
    if status is None:
        return frozenset()
    return VALID_TRANSITIONS[status]


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    target_status = _coerce_status(target)
    return target_status is not None and target_status in valid_transitions(current)


def side_effects_for(order: OrderSnapshot, target: OrderStatus) -> tuple:
    """Side effects entering *target* obliges, in execution order."""
    if target == OrderStatus.CONFIRMED:
        return (
            SideEffect(type=SideEffectType.RESERVE_STOCK, items=order.items),
            SideEffect(type=SideEffectType.CREATE_DELIVERY),
        )
    if target == OrderStatus.CANCELLED:
        effects = [SideEffect(type=SideEffectType.RESTORE_STOCK, items=order.items)]
        if order.payment_method == PaymentMethod.CREDIT:
            effects.append(
                SideEffect(
                    type=SideEffectType.RESTORE_CREDIT,
                    retailer_id=order.retailer_id,
                    amount=order.total_amount,
                )
            )
        return tuple(effects)
    if target == OrderStatus.DELIVERED:
        return (
            SideEffect(type=SideEffectType.COMPLETE_FULFILLMENT),
            SideEffect(type=SideEffectType.NOTIFY_DELIVERY, retailer_id=order.retailer_id),
        )
    return ()


def apply_transition(
    order: OrderSnapshot,
    target: StatusLike,
    actor: str,
    notes: Optional[str] = None,
) -> TransitionResult:
    """Validate ``order.status -> target`` and describe its consequences.

    Raises:
        InvalidTransition: *target* is not reachable from the current status
            (this includes ``target == order.status``).
    """
    target_status = _coerce_status(target)
    if target_status is None or target_status not in valid_transitions(order.status):
        logger.warning(
            "order.invalid_transition",
            order_id=str(order.id),
            current_status=order.status,
            target_status=target,
            actor=actor,
        )
        raise InvalidTransition(order.status, target)

    return TransitionResult(
        order_id=order.id,
        old_status=order.status,
        new_status=target_status,
        actor=actor,
        notes=notes,
        side_effects=side_effects_for(order, target_status),
    )


def apply_bulk_transition(
    orders: Iterable[OrderSnapshot],
    target: StatusLike,
    actor: str,
    notes: Optional[str] = None,
) -> BulkTransitionResult:
    """Evaluate every order independently against the same *target*.

    Orders that cannot take *target* are reported in ``skipped``; the
    others are listed in ``succeeded`` along with their results.
    """
    succeeded: List = []
    skipped: List[SkippedOrder] = []
    results: List[TransitionResult] = []

    for order in orders:
        try:
            result = apply_transition(order, target, actor, notes)
        except InvalidTransition as exc:
            skipped.append(
                SkippedOrder(
                    order_id=order.id,
                    reason=SkipReason.INVALID_TRANSITION,
                    detail=str(exc),
                )
            )
            continue
        succeeded.append(order.id)
        results.append(result)

    logger.info(
        "order.bulk_transition_evaluated",
        target_status=target,
        succeeded=len(succeeded),
        skipped=len(skipped),
    )
    return BulkTransitionResult(
        target=str(target),
        succeeded=tuple(succeeded),
        skipped=tuple(skipped),
        results=tuple(results),
    )
