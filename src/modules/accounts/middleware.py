"""Django middleware running the portal access guard on every page."""

from __future__ import annotations

from typing import Callable, Optional

import structlog
from django.conf import settings
from django.http import HttpRequest, HttpResponse, HttpResponseRedirect

from modules.accounts.access import AccessRules
from modules.accounts.guard import AccessRequest, Redirect, evaluate_request
from modules.accounts.identity import get_identity_verifier
from modules.accounts.repositories.django_repository import ProfileDjangoRepository

logger = structlog.get_logger(__name__)


def extract_token(request: HttpRequest) -> Optional[str]:
    """Identity token from the session cookie, else a Bearer header."""
    token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    header = request.META.get("HTTP_AUTHORIZATION", "")
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


class RouteAuthorizationMiddleware:
    """Redirects callers the guard rejects; annotates ``request.access``."""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response
        self.rules = AccessRules.from_settings(settings.ACCESS_CONTROL)
        self.verifier = get_identity_verifier()
        self.profiles = ProfileDjangoRepository()

    def __call__(self, request: HttpRequest) -> HttpResponse:
        path = request.path_info
        if self.rules.bypasses(path):
            return self.get_response(request)

        decision = evaluate_request(
            AccessRequest(path=path, token=extract_token(request)),
            self.rules,
            verifier=self.verifier,
            profiles=self.profiles,
        )
        if isinstance(decision, Redirect):
            logger.info(
                "access.redirect",
                path=path,
                reason=decision.reason.value,
                target=decision.target,
            )
            return HttpResponseRedirect(decision.target)

        request.access = decision
        return self.get_response(request)
