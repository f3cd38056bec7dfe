"""Delivery repository contract."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery
    from modules.orders.models import Order


class IDeliveryRepository(IRepository["Delivery"]):
    @abstractmethod
    def create_for_order(self, order: Order) -> Delivery:
        """Open a pending delivery for a freshly confirmed order."""

    @abstractmethod
    def mark_delivered(self, order_id: UUID) -> Optional[Delivery]:
        """Close the order's delivery; ``None`` if it has none."""
