"""OrderService against the real repositories.

Covers stock reservation/restoration, credit restoration, delivery
creation and completion, status history, the outbox and bulk savepoints.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent
from modules.deliveries.models import Delivery, DeliveryStatus
from modules.orders.constants import OrderStatus, PaymentMethod, SkipReason
from modules.orders.dtos import BulkStatusUpdateDTO, CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import InvalidTransition, StatusConflict
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.views import build_order_service
from modules.products.exceptions import InsufficientStock
from modules.retailers.exceptions import CreditLimitExceeded

pytestmark = pytest.mark.integration

ACTOR = "admin-sub"


@pytest.fixture()
def service():
    return build_order_service()


@pytest.fixture()
def place_order(service, retailer, product, second_product):
    def _place(payment_method=PaymentMethod.CASH, quantity=3, items=None):
        dto = CreateOrderDTO(
            retailer_id=retailer.id,
            items=items
            or [
                CreateOrderItemDTO(product_id=product.id, quantity=quantity),
                CreateOrderItemDTO(product_id=second_product.id, quantity=1),
            ],
            payment_method=payment_method,
        )
        return service.create_order(dto, actor="retailer-sub")

    return _place


def walk(service, order, *statuses):
    for status in statuses:
        order = service.update_status(order.id, status, ACTOR)
    return order


class TestCreateOrder:
    def test_totals_from_catalogue_and_pending_history(self, place_order):
        order = place_order()

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("55.50")  # 3 x 10.00 + 1 x 25.50
        assert order.order_number.startswith("ORD-")
        assert order.stock_reserved is False
        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status is None
        assert history.new_status == OrderStatus.PENDING
        assert OutboxEvent.objects.filter(event_type="OrderCreated").count() == 1

    def test_stock_untouched_until_confirmation(self, place_order, product):
        place_order()
        product.refresh_from_db()
        assert product.stock_quantity == 100

    def test_credit_order_charges_balance(self, place_order, retailer):
        place_order(payment_method=PaymentMethod.CREDIT)
        retailer.refresh_from_db()
        assert retailer.current_balance == Decimal("-55.50")

    def test_credit_limit_enforced(self, place_order, product):
        with pytest.raises(CreditLimitExceeded):
            place_order(
                payment_method=PaymentMethod.CREDIT,
                items=[CreateOrderItemDTO(product_id=product.id, quantity=101)],
            )
        assert not Order.objects.exists()


class TestConfirm:
    def test_reserves_stock_and_opens_delivery(self, service, place_order, product, second_product):
        order = place_order()

        order = service.update_status(order.id, OrderStatus.CONFIRMED, ACTOR)

        product.refresh_from_db()
        second_product.refresh_from_db()
        assert product.stock_quantity == 97
        assert second_product.stock_quantity == 19
        assert order.stock_reserved is True

        delivery = Delivery.objects.get(order=order)
        assert delivery.status == DeliveryStatus.PENDING
        assert delivery.delivery_number.startswith("DEL-")
        assert delivery.cash_to_collect == order.total_amount
        assert delivery.delivery_address == order.delivery_address

    def test_credit_order_delivery_collects_nothing(self, service, place_order):
        order = place_order(payment_method=PaymentMethod.CREDIT)
        service.update_status(order.id, OrderStatus.CONFIRMED, ACTOR)
        assert Delivery.objects.get(order_id=order.id).cash_to_collect == Decimal("0.00")

    def test_shortage_rolls_back_everything(self, service, place_order, product):
        order = place_order(quantity=150)

        with pytest.raises(InsufficientStock):
            service.update_status(order.id, OrderStatus.CONFIRMED, ACTOR)

        order.refresh_from_db()
        product.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert product.stock_quantity == 100
        assert not Delivery.objects.filter(order=order).exists()


class TestCancel:
    def test_confirmed_order_gives_stock_back(self, service, place_order, product):
        order = walk(service, place_order(), OrderStatus.CONFIRMED)

        order = service.cancel_order(order.id, ACTOR, reason="Out of route")

        product.refresh_from_db()
        assert product.stock_quantity == 100
        assert order.status == OrderStatus.CANCELLED
        assert order.cancellation_reason == "Out of route"
        assert order.stock_reserved is False

    def test_pending_order_cancel_keeps_stock(self, service, place_order, product):
        order = place_order()
        service.cancel_order(order.id, ACTOR, reason="Duplicate")
        product.refresh_from_db()
        assert product.stock_quantity == 100

    def test_credit_restored(self, service, place_order, retailer):
        order = place_order(payment_method=PaymentMethod.CREDIT)

        service.cancel_order(order.id, ACTOR, reason="Changed mind")

        retailer.refresh_from_db()
        assert retailer.current_balance == Decimal("0.00")

    def test_delivered_order_cannot_be_cancelled(self, service, place_order):
        order = walk(
            service,
            place_order(),
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        )
        with pytest.raises(InvalidTransition):
            service.cancel_order(order.id, ACTOR, reason="too late")


class TestFullLifecycle:
    def test_history_and_delivery_completion(self, service, place_order):
        order = walk(
            service,
            place_order(),
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        )

        assert order.delivered_at is not None
        delivery = Delivery.objects.get(order=order)
        assert delivery.status == DeliveryStatus.DELIVERED
        assert [u["status"] for u in delivery.tracking_updates] == ["pending", "delivered"]

        trail = list(
            OrderStatusHistory.objects.filter(order=order)
            .order_by("created_at", "id")
            .values_list("old_status", "new_status", "actor_id")
        )
        assert trail == [
            (None, "pending", "retailer-sub"),
            ("pending", "confirmed", ACTOR),
            ("confirmed", "processing", ACTOR),
            ("processing", "shipped", ACTOR),
            ("shipped", "delivered", ACTOR),
        ]
        assert OutboxEvent.objects.filter(event_type="OrderDelivered").count() == 1
        assert OutboxEvent.objects.filter(event_type="OrderStatusChanged").count() == 4


class TestCommitStatus:
    def test_stale_expected_status_conflicts(self, place_order):
        order = place_order()
        Order.objects.filter(id=order.id).update(status=OrderStatus.CANCELLED)

        order.status = OrderStatus.CONFIRMED
        with pytest.raises(StatusConflict):
            OrderDjangoRepository().commit_status(order, expected_status=OrderStatus.PENDING)


class TestBulk:
    def test_mixed_batch(self, service, place_order):
        pending = place_order(quantity=1)
        shipped = walk(
            service,
            place_order(quantity=1),
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
        )
        missing = uuid4()

        result = service.bulk_update_status(
            BulkStatusUpdateDTO(
                order_ids=[pending.id, shipped.id, missing], status="cancelled", notes="sweep"
            ),
            ACTOR,
        )

        assert result.succeeded == (pending.id,)
        assert [(s.order_id, s.reason) for s in result.skipped] == [
            (shipped.id, SkipReason.INVALID_TRANSITION),
            (missing, SkipReason.ORDER_NOT_FOUND),
        ]
        pending.refresh_from_db()
        assert pending.status == OrderStatus.CANCELLED
        assert OrderStatusHistory.objects.get(order=pending, new_status="cancelled").bulk is True

    def test_shortage_in_one_order_keeps_the_others(self, service, place_order, product, second_product):
        small = place_order(quantity=10)
        large = place_order(quantity=95)

        result = service.bulk_update_status(
            BulkStatusUpdateDTO(order_ids=[small.id, large.id], status="confirmed"), ACTOR
        )

        assert result.succeeded == (small.id,)
        assert result.skipped[0].order_id == large.id
        assert result.skipped[0].reason == SkipReason.INSUFFICIENT_STOCK

        small.refresh_from_db()
        large.refresh_from_db()
        product.refresh_from_db()
        assert small.status == OrderStatus.CONFIRMED
        assert large.status == OrderStatus.PENDING
        assert product.stock_quantity == 90
        assert not Delivery.objects.filter(order=large).exists()
