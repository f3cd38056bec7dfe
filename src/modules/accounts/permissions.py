"""DRF permissions keyed on the caller's profile role."""

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission

from modules.accounts.constants import Role


class HasRole(BasePermission):
    required_role: Optional[Role] = None
    message = "Role access required."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not getattr(user, "is_authenticated", False):
            return False
        if self.required_role is None:
            return False
        return getattr(user, "role", None) == self.required_role


class IsAdminRole(HasRole):
    required_role = Role.ADMIN
    message = "Administrator role required."


class IsRetailerRole(HasRole):
    """Retailer role with a linked retailer record."""

    required_role = Role.RETAILER
    message = "Provisioned retailer account required."

    def has_permission(self, request, view) -> bool:
        if not super().has_permission(request, view):
            return False
        return getattr(request.user, "retailer_id", None) is not None


class IsDriverRole(HasRole):
    required_role = Role.DRIVER
    message = "Driver role required."
