"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.permissions import IsAdminRole, IsRetailerRole
from modules.core.pagination import StandardResultsSetPagination
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.orders.dtos import BulkStatusUpdateDTO, CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import (
    InactiveProduct,
    InactiveRetailer,
    InvalidTransition,
    OrderNotFound,
    StatusConflict,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    BulkStatusUpdateSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
    sorted_statuses,
)
from modules.orders.services import OrderService
from modules.orders.state_machine import valid_transitions
from modules.products.exceptions import InsufficientStock, ProductNotFound
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.retailers.exceptions import CreditLimitExceeded, RetailerNotFound
from modules.retailers.repositories.django_repository import RetailerDjangoRepository

logger = structlog.get_logger(__name__)

NOT_FOUND = {"detail": "Order not found."}


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        retailer_repository=RetailerDjangoRepository(),
        delivery_repository=DeliveryDjangoRepository(),
    )


def _parse_uuid(pk: str | None) -> UUID | None:
    try:
        return UUID(str(pk))
    except ValueError:
        return None


class _OrderReadMixin:
    """Shared list / retrieve / stats plumbing."""

    filterset_class = OrderFilter
    search_fields = ["order_number", "retailer__business_name"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def scope_retailer_id(self) -> UUID | None:
        return None

    def get_queryset(self):
        retailer_id = self.scope_retailer_id()
        filters = {"retailer_id": retailer_id} if retailer_id is not None else None
        return self._service.list_orders(filters)

    def list(self, request: Request) -> Response:
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        if _parse_uuid(pk) is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.get_order(pk, retailer_id=self.scope_retailer_id())
        except OrderNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        breakdown = self._service.status_breakdown(self.scope_retailer_id())
        return Response(breakdown.model_dump(mode="json"))


class OrderViewSet(_OrderReadMixin, GenericViewSet):
    """Back-office order management (administrators only).

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    permission_classes = [IsAdminRole]

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Cancellations are **not** allowed via this endpoint; use
        ``POST /orders/{id}/cancel/`` instead.
        """
        order_id = _parse_uuid(pk)
        if order_id is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)

        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_status(
                order_id=order_id,
                new_status=data["status"],
                actor=request.user.subject_id,
                notes=data["notes"],
            )
        except OrderNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidTransition as exc:
            return Response(
                {
                    "detail": str(exc),
                    "allowed_transitions": sorted_statuses(valid_transitions(exc.current)),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except (StatusConflict, InsufficientStock) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Gives back reserved stock and, for credit orders, the retailer's
        credit.
        """
        order_id = _parse_uuid(pk)
        if order_id is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)

        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.cancel_order(
                order_id=order_id,
                actor=request.user.subject_id,
                reason=data["reason"],
                notes=data["notes"],
            )
        except OrderNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidTransition as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except StatusConflict as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def transitions(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/transitions/"""
        if _parse_uuid(pk) is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {
                "order_id": str(order.id),
                "status": order.status,
                "allowed_transitions": sorted_statuses(valid_transitions(order.status)),
            }
        )

    @action(detail=False, methods=["post"], url_path="bulk-status")
    def bulk_status(self, request: Request) -> Response:
        """POST /api/v1/orders/bulk-status/

        Always 200 once the payload validates; the body lists which orders
        moved and why the others did not.
        """
        serializer = BulkStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = BulkStatusUpdateDTO(**serializer.validated_data)

        result = self._service.bulk_update_status(dto, actor=request.user.subject_id)
        return Response(
            {
                "status": result.target,
                "updated": len(result.succeeded),
                "skipped_count": len(result.skipped),
                "succeeded": [str(order_id) for order_id in result.succeeded],
                "skipped": [skip.model_dump(mode="json") for skip in result.skipped],
            }
        )


class RetailerOrderViewSet(_OrderReadMixin, GenericViewSet):
    """A retailer's own orders."""

    queryset = Order.objects.all()
    permission_classes = [IsRetailerRole]

    def scope_retailer_id(self) -> UUID | None:
        return self.request.user.retailer_id

    def create(self, request: Request) -> Response:
        """POST /api/v1/retailer/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CreateOrderDTO(
                retailer_id=request.user.retailer_id,
                items=[
                    CreateOrderItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
                payment_method=data["payment_method"],
                delivery_address=data["delivery_address"],
                notes=data["notes"],
            )
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors(include_url=False, include_context=False)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.create_order(dto, actor=request.user.subject_id)
        except (RetailerNotFound, ProductNotFound) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InactiveRetailer, InactiveProduct) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except CreditLimitExceeded as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
