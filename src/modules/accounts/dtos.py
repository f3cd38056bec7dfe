"""Session DTOs exchanged between the guard and its collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from modules.accounts.constants import Role

if TYPE_CHECKING:
    from modules.accounts.models import UserProfile


class Identity(BaseModel):
    """A verified identity token's subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    email: Optional[str] = None


class Profile(BaseModel):
    """The authorisation-relevant slice of a user profile."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    role: Role
    is_active: bool
    retailer_id: Optional[UUID] = None

    @classmethod
    def from_entity(cls, profile: UserProfile) -> Profile:
        return cls(
            subject_id=profile.subject_id,
            role=profile.role,
            is_active=profile.is_active,
            retailer_id=profile.retailer_id,
        )


class Session(BaseModel):
    """An authenticated caller: verified identity plus resolved profile."""

    model_config = ConfigDict(frozen=True)

    identity: Identity
    profile: Profile

    @property
    def subject_id(self) -> str:
        return self.identity.subject_id

    @property
    def role(self) -> Role:
        return self.profile.role
