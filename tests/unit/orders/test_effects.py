"""Unit tests for SideEffectExecutor with mocked repositories."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import OrderLineDTO, OrderSnapshot
from modules.orders.effects import SideEffectExecutor
from modules.orders.events import OrderDelivered
from modules.orders.models import Order
from modules.orders.state_machine import apply_transition
from modules.products.exceptions import InsufficientStock

pytestmark = pytest.mark.unit


@pytest.fixture()
def repos():
    return MagicMock(), MagicMock(), MagicMock()


@pytest.fixture()
def executor(repos):
    return SideEffectExecutor(*repos)


def make_order(status=OrderStatus.PENDING, payment_method=PaymentMethod.CASH, **kwargs):
    return Order(
        id=uuid4(),
        order_number="ORD-20260101-ABC123",
        retailer_id=uuid4(),
        status=status,
        payment_method=payment_method,
        total_amount=Decimal("30.00"),
        **kwargs,
    )


def result_for(order, target, lines=()):
    snap = OrderSnapshot(
        id=order.id,
        status=order.status,
        payment_method=order.payment_method,
        total_amount=order.total_amount,
        retailer_id=order.retailer_id,
        items=tuple(lines),
    )
    return apply_transition(snap, target, "admin-sub")


class TestConfirmEffects:
    def test_reserves_stock_and_opens_delivery(self, executor, repos):
        product_repo, _, delivery_repo = repos
        order = make_order()
        line = OrderLineDTO(product_id=uuid4(), quantity=3)

        executor.execute(order, result_for(order, OrderStatus.CONFIRMED, [line]))

        reserved = list(product_repo.reserve.call_args.args[0])
        assert reserved == [(line.product_id, 3)]
        assert order.stock_reserved is True
        delivery_repo.create_for_order.assert_called_once_with(order)

    def test_skips_reservation_already_held(self, executor, repos):
        product_repo, _, _ = repos
        order = make_order(stock_reserved=True)

        executor.execute(order, result_for(order, OrderStatus.CONFIRMED))

        product_repo.reserve.assert_not_called()

    def test_shortage_propagates_and_stops_later_effects(self, executor, repos):
        product_repo, _, delivery_repo = repos
        product_repo.reserve.side_effect = InsufficientStock("short")
        order = make_order()

        with pytest.raises(InsufficientStock):
            executor.execute(order, result_for(order, OrderStatus.CONFIRMED))

        assert order.stock_reserved is False
        delivery_repo.create_for_order.assert_not_called()


class TestCancelEffects:
    def test_releases_held_stock(self, executor, repos):
        product_repo, _, _ = repos
        order = make_order(status=OrderStatus.CONFIRMED, stock_reserved=True)
        line = OrderLineDTO(product_id=uuid4(), quantity=2)

        executor.execute(order, result_for(order, OrderStatus.CANCELLED, [line]))

        assert list(product_repo.release.call_args.args[0]) == [(line.product_id, 2)]
        assert order.stock_reserved is False

    def test_pending_order_has_nothing_to_release(self, executor, repos):
        product_repo, _, _ = repos
        order = make_order()

        executor.execute(order, result_for(order, OrderStatus.CANCELLED))

        product_repo.release.assert_not_called()

    def test_credit_order_gets_credit_back(self, executor, repos):
        _, retailer_repo, _ = repos
        order = make_order(payment_method=PaymentMethod.CREDIT)

        executor.execute(order, result_for(order, OrderStatus.CANCELLED))

        retailer_repo.restore_credit.assert_called_once_with(
            order.retailer_id, Decimal("30.00")
        )

    def test_cash_order_leaves_credit_alone(self, executor, repos):
        _, retailer_repo, _ = repos
        order = make_order()

        executor.execute(order, result_for(order, OrderStatus.CANCELLED))

        retailer_repo.restore_credit.assert_not_called()


class TestDeliverEffects:
    def test_stamps_delivery_and_raises_event(self, executor, repos):
        _, _, delivery_repo = repos
        order = make_order(status=OrderStatus.SHIPPED)

        executor.execute(order, result_for(order, OrderStatus.DELIVERED))

        assert order.delivered_at is not None
        delivery_repo.mark_delivered.assert_called_once_with(order.id)
        events = order.domain_events
        assert len(events) == 1
        assert isinstance(events[0], OrderDelivered)
        assert events[0].payload["order_number"] == order.order_number
        assert events[0].payload["retailer_id"] == str(order.retailer_id)

    def test_intermediate_step_touches_nothing(self, executor, repos):
        order = make_order(status=OrderStatus.CONFIRMED)

        executor.execute(order, result_for(order, OrderStatus.PROCESSING))

        for repo in repos:
            assert repo.method_calls == []
