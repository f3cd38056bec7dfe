"""Landing endpoints for the portals.

The portal UIs are separate front-ends; these views are the server-side
entry points the guard protects or redirects to.
"""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse
from django.shortcuts import redirect

from modules.accounts.constants import REASON_PARAM, REQUIRED_ROLE_PARAM, RETURN_TARGET_PARAM


def root(request: HttpRequest):
    return redirect("accounts:login")


def login_landing(request: HttpRequest) -> JsonResponse:
    """Where the guard sends rejected callers; echoes the reason back."""
    return JsonResponse(
        {
            "detail": "Sign in required.",
            "error": request.GET.get(REASON_PARAM),
            "required_role": request.GET.get(REQUIRED_ROLE_PARAM),
            "redirect": request.GET.get(RETURN_TARGET_PARAM),
        }
    )


def complete_profile_landing(request: HttpRequest) -> JsonResponse:
    return JsonResponse(
        {
            "detail": "Retailer profile must be completed before continuing.",
            "error": request.GET.get(REASON_PARAM),
        }
    )


def portal_home(request: HttpRequest, portal: str) -> JsonResponse:
    """Portal entry point; only reachable once the guard has allowed it."""
    access = request.access
    return JsonResponse(
        {
            "portal": portal,
            "subject_id": access.identity.subject_id,
            "role": access.role.value,
            "retailer_id": str(access.retailer_id) if access.retailer_id else None,
        }
    )
