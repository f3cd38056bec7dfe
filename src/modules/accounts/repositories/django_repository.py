"""Django ORM implementation of the profile store."""

from __future__ import annotations

from typing import Optional

import structlog
from django.db import DatabaseError

from modules.accounts.dtos import Profile
from modules.accounts.exceptions import ProfileStoreError
from modules.accounts.models import UserProfile
from modules.accounts.repositories.interfaces import IProfileRepository

logger = structlog.get_logger(__name__)


class ProfileDjangoRepository(IProfileRepository):
    def get_profile(self, subject_id: str) -> Optional[Profile]:
        try:
            profile = UserProfile.objects.filter(subject_id=subject_id).first()
        except DatabaseError as exc:
            logger.error("profile.lookup_failed", subject_id=subject_id, error=str(exc))
            raise ProfileStoreError(str(exc)) from exc
        if profile is None:
            return None
        return Profile.from_entity(profile)
