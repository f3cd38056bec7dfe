"""Access-control exceptions.

Each carries the ``RedirectReason`` the guard reports for it.  The guard
converts them into redirects; the API authentication class converts them
into 401/503 responses.  None of them escapes to the caller.
"""

from __future__ import annotations

from typing import Optional

from modules.accounts.constants import RedirectReason, Role


class AccessDenied(Exception):
    reason: RedirectReason = RedirectReason.UNAUTHENTICATED


class Unauthenticated(AccessDenied):
    """No identity token, or the token does not verify."""

    reason = RedirectReason.UNAUTHENTICATED


class AccountNotFound(AccessDenied):
    """The token verified but no profile exists for its subject."""

    reason = RedirectReason.ACCOUNT_NOT_FOUND


class AccountInactive(AccessDenied):
    """The profile exists but is deactivated."""

    reason = RedirectReason.ACCOUNT_INACTIVE


class RoleMismatch(AccessDenied):
    """The profile's role is not the one the resource requires."""

    reason = RedirectReason.ROLE_ACCESS_REQUIRED

    def __init__(self, required_role: Optional[Role], actual_role: Optional[Role] = None):
        self.required_role = required_role
        self.actual_role = actual_role
        super().__init__(f"Role {required_role or '<unconfigured>'} required.")


class ProfileIncomplete(AccessDenied):
    """A retailer account with no linked retailer record."""

    reason = RedirectReason.PROFILE_INCOMPLETE


class AccessSystemError(AccessDenied):
    """A collaborator (token verifier, profile store) failed."""

    reason = RedirectReason.SYSTEM_ERROR


class ProfileStoreError(Exception):
    """The profile store could not be queried."""
