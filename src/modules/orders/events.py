"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every committed status transition."""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""


@dataclass(frozen=True)
class OrderDelivered(DomainEvent):
    """Raised when an order is delivered; triggers the completion notice."""
