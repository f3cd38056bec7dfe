"""Product domain exceptions."""

from __future__ import annotations


class ProductNotFound(Exception):
    """A product referenced by a stock movement does not exist."""


class InsufficientStock(Exception):
    """Not enough stock on hand to reserve the requested quantity."""
