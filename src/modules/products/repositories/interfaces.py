"""Product repository contract: stock movements for order side effects."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, Tuple
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product

StockLine = Tuple[UUID, int]


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def reserve(self, lines: Iterable[StockLine]) -> None:
        """Deduct each ``(product_id, quantity)`` from stock, all or nothing.

        Raises:
            ProductNotFound: a product does not exist.
            InsufficientStock: a product has less stock than requested.
        """

    @abstractmethod
    def release(self, lines: Iterable[StockLine]) -> None:
        """Return each ``(product_id, quantity)`` to stock.

        Products deleted since the reservation are skipped.
        """
