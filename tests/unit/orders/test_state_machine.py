"""Unit tests for the Order status state machine.

Covers:
- ``valid_transitions`` for every status, new orders and unknown values.
- ``apply_transition`` acceptance, rejection and side-effect lists.
- ``apply_bulk_transition`` independent evaluation.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.orders.constants import (
    ALL_STATUSES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    SideEffectType,
    SkipReason,
)
from modules.orders.dtos import OrderLineDTO, OrderSnapshot
from modules.orders.exceptions import InvalidTransition
from modules.orders.state_machine import (
    apply_bulk_transition,
    apply_transition,
    can_transition,
    valid_transitions,
)

pytestmark = pytest.mark.unit

ACTOR = "admin-sub"


def snapshot(status=OrderStatus.PENDING, payment_method=PaymentMethod.CASH, **kwargs):
    defaults = {
        "id": uuid4(),
        "status": status,
        "payment_method": payment_method,
        "total_amount": Decimal("42.50"),
        "retailer_id": uuid4(),
        "items": (
            OrderLineDTO(product_id=uuid4(), quantity=3),
            OrderLineDTO(product_id=uuid4(), quantity=1),
        ),
    }
    defaults.update(kwargs)
    return OrderSnapshot(**defaults)


ALLOWED_PAIRS = [
    (current, target) for current, targets in VALID_TRANSITIONS.items() for target in targets
]
FORBIDDEN_PAIRS = [
    (current, target)
    for current in OrderStatus
    for target in OrderStatus
    if target not in VALID_TRANSITIONS[current]
]


# ---------------------------------------------------------------------------
# valid_transitions
# ---------------------------------------------------------------------------


class TestValidTransitions:
    def test_table(self):
        assert valid_transitions(OrderStatus.PENDING) == {
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
        }
        assert valid_transitions(OrderStatus.CONFIRMED) == {
            OrderStatus.PROCESSING,
            OrderStatus.CANCELLED,
        }
        assert valid_transitions(OrderStatus.PROCESSING) == {
            OrderStatus.SHIPPED,
            OrderStatus.CANCELLED,
        }
        assert valid_transitions(OrderStatus.SHIPPED) == {OrderStatus.DELIVERED}

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_never_contains_itself(self, status):
        assert status not in valid_transitions(status)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES))
    def test_terminal_states_reach_nothing(self, status):
        assert valid_transitions(status) == frozenset()

    def test_terminal_states_are_delivered_and_cancelled(self):
        assert TERMINAL_STATES == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

    @pytest.mark.parametrize("current", [None, ""])
    def test_new_order_may_take_any_status(self, current):
        assert valid_transitions(current) == ALL_STATUSES

    def test_unknown_status_reaches_nothing(self):
        assert valid_transitions("archived") == frozenset()

    def test_accepts_plain_strings(self):
        assert valid_transitions("shipped") == {OrderStatus.DELIVERED}

    def test_can_transition(self):
        assert can_transition("pending", "confirmed")
        assert not can_transition("pending", "shipped")
        assert not can_transition("pending", "bogus")


# ---------------------------------------------------------------------------
# apply_transition
# ---------------------------------------------------------------------------


class TestApplyTransition:
    @pytest.mark.parametrize("current,target", ALLOWED_PAIRS)
    def test_allowed_pairs_succeed(self, current, target):
        order = snapshot(status=current)
        result = apply_transition(order, target, ACTOR, notes="ok")

        assert result.order_id == order.id
        assert result.old_status == current
        assert result.new_status == target
        assert result.actor == ACTOR
        assert result.notes == "ok"

    @pytest.mark.parametrize("current,target", FORBIDDEN_PAIRS)
    def test_forbidden_pairs_raise(self, current, target):
        with pytest.raises(InvalidTransition) as exc_info:
            apply_transition(snapshot(status=current), target, ACTOR)
        assert exc_info.value.current == current
        assert exc_info.value.target == target

    def test_delivered_cannot_be_cancelled(self):
        with pytest.raises(InvalidTransition):
            apply_transition(snapshot(status=OrderStatus.DELIVERED), OrderStatus.CANCELLED, ACTOR)

    def test_unknown_target_raises(self):
        with pytest.raises(InvalidTransition):
            apply_transition(snapshot(), "archived", ACTOR)

    def test_notes_default_to_none(self):
        result = apply_transition(snapshot(), OrderStatus.CONFIRMED, ACTOR)
        assert result.notes is None

    def test_confirm_reserves_stock_then_creates_delivery(self):
        order = snapshot()
        result = apply_transition(order, OrderStatus.CONFIRMED, ACTOR)

        assert result.side_effect_types == [
            SideEffectType.RESERVE_STOCK,
            SideEffectType.CREATE_DELIVERY,
        ]
        assert result.side_effects[0].items == order.items

    def test_cancel_cash_order_restores_stock_only(self):
        order = snapshot(payment_method=PaymentMethod.CASH)
        result = apply_transition(order, OrderStatus.CANCELLED, ACTOR)

        assert result.side_effect_types == [SideEffectType.RESTORE_STOCK]
        assert result.side_effects[0].items == order.items

    def test_cancel_credit_order_restores_stock_and_credit(self):
        order = snapshot(payment_method=PaymentMethod.CREDIT)
        result = apply_transition(order, OrderStatus.CANCELLED, ACTOR)

        assert result.side_effect_types == [
            SideEffectType.RESTORE_STOCK,
            SideEffectType.RESTORE_CREDIT,
        ]
        credit = result.side_effects[1]
        assert credit.retailer_id == order.retailer_id
        assert credit.amount == order.total_amount

    def test_deliver_completes_and_notifies(self):
        result = apply_transition(
            snapshot(status=OrderStatus.SHIPPED), OrderStatus.DELIVERED, ACTOR
        )
        assert result.side_effect_types == [
            SideEffectType.COMPLETE_FULFILLMENT,
            SideEffectType.NOTIFY_DELIVERY,
        ]

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        ],
    )
    def test_intermediate_steps_have_no_side_effects(self, current, target):
        result = apply_transition(snapshot(status=current), target, ACTOR)
        assert result.side_effects == ()

    def test_order_without_status_may_take_any(self):
        result = apply_transition(snapshot(status=None), OrderStatus.SHIPPED, ACTOR)
        assert result.old_status is None
        assert result.new_status == OrderStatus.SHIPPED

    def test_input_is_not_modified(self):
        order = snapshot()
        apply_transition(order, OrderStatus.CONFIRMED, ACTOR)
        assert order.status == OrderStatus.PENDING


# ---------------------------------------------------------------------------
# apply_bulk_transition
# ---------------------------------------------------------------------------


class TestApplyBulkTransition:
    def test_pending_and_delivered_to_confirmed(self):
        pending = snapshot(status=OrderStatus.PENDING)
        delivered = snapshot(status=OrderStatus.DELIVERED)

        result = apply_bulk_transition([pending, delivered], OrderStatus.CONFIRMED, ACTOR)

        assert result.succeeded == (pending.id,)
        assert len(result.skipped) == 1
        assert result.skipped[0].order_id == delivered.id
        assert result.skipped[0].reason == SkipReason.INVALID_TRANSITION
        assert [r.order_id for r in result.results] == [pending.id]

    def test_keeps_input_order(self):
        orders = [snapshot() for _ in range(5)]
        result = apply_bulk_transition(orders, OrderStatus.CANCELLED, ACTOR)
        assert result.succeeded == tuple(o.id for o in orders)

    def test_does_not_stop_at_first_failure(self):
        orders = [
            snapshot(status=OrderStatus.SHIPPED),
            snapshot(status=OrderStatus.CANCELLED),
            snapshot(status=OrderStatus.PROCESSING),
        ]
        result = apply_bulk_transition(orders, OrderStatus.CANCELLED, ACTOR, notes="bulk")

        assert result.succeeded == (orders[2].id,)
        assert [s.order_id for s in result.skipped] == [orders[0].id, orders[1].id]
        assert result.results[0].notes == "bulk"

    def test_empty_batch(self):
        result = apply_bulk_transition([], OrderStatus.CONFIRMED, ACTOR)
        assert result.succeeded == ()
        assert result.skipped == ()
        assert result.target == "confirmed"
