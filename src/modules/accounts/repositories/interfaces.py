"""Profile store contract consumed by the access guard."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from modules.accounts.dtos import Profile


class IProfileRepository(ABC):
    @abstractmethod
    def get_profile(self, subject_id: str) -> Optional[Profile]:
        """Return the profile for *subject_id*, or ``None`` if none exists.

        Raises:
            ProfileStoreError: the store could not be queried.
        """
