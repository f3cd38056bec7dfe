"""Generic repository interface.

Service-layer code depends on these abstractions, never on the Django ORM
directly, so collaborators can be swapped for doubles in unit tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base contract: look-up by primary key and persistence."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key (``None`` when absent)."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""
