"""User profile linked to an identity-provider subject.

The identity provider owns credentials; this table only carries what the
platform needs to authorise a session: role, activation flag and, for
retailer accounts, the retailer the user acts for.
"""

from __future__ import annotations

from django.db import models

from modules.accounts.constants import Role
from modules.core.models import BaseModel


class UserProfile(BaseModel):
    subject_id = models.CharField(max_length=255, unique=True)
    email = models.EmailField(max_length=254, blank=True, default="")
    full_name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(max_length=20, choices=Role.choices)
    is_active = models.BooleanField(default=True)
    retailer = models.ForeignKey(
        "retailers.Retailer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )

    class Meta:
        db_table = "user_profiles"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["role"], name="user_profiles_role_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.subject_id} ({self.role})"
