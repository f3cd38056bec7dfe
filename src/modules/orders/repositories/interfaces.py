"""Order store contract.

The service layer depends exclusively on this interface.  Status writes
go through ``commit_status`` so that a change racing in between
validation and commit surfaces as ``StatusConflict`` instead of being
silently overwritten.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import StatusBreakdownDTO
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order and its items atomically.

        ``data`` holds ``retailer_id``, ``payment_method``,
        ``delivery_address``, ``notes`` and ``items`` (dicts with
        ``product_id``, ``quantity``, ``unit_price``).
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        """Queryable of orders matching *filters*."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (``None`` if absent)."""

    @abstractmethod
    def get_many_for_update(self, ids: Iterable[UUID]) -> List[Order]:
        """Lock and return the existing orders among *ids*, in id order."""

    @abstractmethod
    def commit_status(self, order: Order, expected_status: Optional[str]) -> Order:
        """Write ``order.status`` if the stored status is still *expected_status*.

        Raises:
            StatusConflict: the stored status differs.
        """

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str] = None,
        actor_id: str = "",
        notes: str = "",
        bulk: bool = False,
    ) -> OrderStatusHistory:
        """Append a row to the order's status audit trail."""

    @abstractmethod
    def status_breakdown(self, retailer_id: Optional[UUID] = None) -> StatusBreakdownDTO:
        """Order counts per status and total revenue."""
