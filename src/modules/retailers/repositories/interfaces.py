"""Retailer repository contract."""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.retailers.models import Retailer


class IRetailerRepository(IRepository["Retailer"]):
    @abstractmethod
    def restore_credit(self, retailer_id: UUID, amount: Decimal) -> Retailer:
        """Add *amount* back to the retailer's current balance.

        Raises:
            RetailerNotFound: no retailer with that id.
        """

    @abstractmethod
    def charge_credit(self, retailer_id: UUID, amount: Decimal) -> Retailer:
        """Deduct *amount* from the retailer's balance for a credit order.

        Raises:
            RetailerNotFound: no retailer with that id.
            CreditLimitExceeded: the charge exceeds the available credit.
        """
