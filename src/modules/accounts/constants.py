"""Account roles and access-denial reason codes."""

from django.db import models


class Role(models.TextChoices):
    ADMIN = "admin", "Administrator"
    RETAILER = "retailer", "Retailer"
    DRIVER = "driver", "Driver"


class RedirectReason(models.TextChoices):
    """Reason codes attached to guard redirects (``?error=<code>``)."""

    UNAUTHENTICATED = "unauthenticated", "Unauthenticated"
    ACCOUNT_NOT_FOUND = "account_not_found", "Account not found"
    ACCOUNT_INACTIVE = "account_inactive", "Account inactive"
    ROLE_ACCESS_REQUIRED = "role_access_required", "Role access required"
    PROFILE_INCOMPLETE = "profile_incomplete", "Profile incomplete"
    SYSTEM_ERROR = "system_error", "System error"


RETURN_TARGET_PARAM = "redirect"
REASON_PARAM = "error"
REQUIRED_ROLE_PARAM = "required_role"
