"""Order domain exceptions.

Raised by the state machine and the service layer.  The API layer
catches these and translates them into HTTP responses.
"""

from __future__ import annotations

from typing import Optional


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidTransition(Exception):
    """The requested status is not reachable from the current one."""

    def __init__(self, current: Optional[str], target: Optional[str]) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}.")


class StatusConflict(Exception):
    """The order's status changed between validation and commit."""


class InactiveRetailer(Exception):
    """The retailer is not active and cannot place orders."""


class InactiveProduct(Exception):
    """A product referenced by an order item is not sold any more."""