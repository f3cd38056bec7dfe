"""Identity-token authentication backend for Django REST Framework.

The API transport is not covered by the page guard, so this class resolves
the same session (token -> identity -> active profile) per API request.

Security decisions
------------------
* **Fail Closed**: an unverifiable token, a missing profile or a
  deactivated profile all return 401; a failing profile store returns 503.
* Requests without an ``Authorization`` header are left to the permission
  classes, which reject anonymous callers.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from rest_framework import status
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import APIException, AuthenticationFailed

from modules.accounts.constants import Role
from modules.accounts.dtos import Session
from modules.accounts.exceptions import AccessDenied, AccessSystemError
from modules.accounts.guard import resolve_session
from modules.accounts.identity import get_identity_verifier
from modules.accounts.repositories.django_repository import ProfileDjangoRepository

logger = structlog.get_logger(__name__)


class ProfileStoreUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Authorisation backend unavailable."
    default_code = "system_error"


class SessionUser:
    """Request user built from a resolved session.

    There is no local Django ``User`` row: the identity provider owns the
    account and ``UserProfile`` carries role and activation.
    """

    is_authenticated = True
    is_anonymous = False

    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def subject_id(self) -> str:
        return self.session.subject_id

    @property
    def pk(self) -> str:
        # read by UserRateThrottle
        return self.session.subject_id

    @property
    def role(self) -> Role:
        return self.session.role

    @property
    def retailer_id(self) -> Optional[UUID]:
        return self.session.profile.retailer_id

    @property
    def is_active(self) -> bool:
        return self.session.profile.is_active

    def __str__(self) -> str:  # pragma: no cover
        return self.subject_id


class ProfileJWTAuthentication(BaseAuthentication):
    """Validate Bearer identity tokens and attach the caller's profile."""

    keyword = "Bearer"

    def __init__(self) -> None:
        self.verifier = get_identity_verifier()
        self.profiles = ProfileDjangoRepository()

    def authenticate(self, request):
        """Return ``(SessionUser, token)`` or ``None`` (no credentials)."""
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header:
            return None

        token = self._extract_token(header)
        try:
            session = resolve_session(token, self.verifier, self.profiles)
        except AccessSystemError as exc:
            logger.error("api_auth.system_error", error=str(exc.__cause__ or exc))
            raise ProfileStoreUnavailable() from exc
        except AccessDenied as exc:
            logger.warning("api_auth.rejected", reason=exc.reason.value)
            raise AuthenticationFailed(detail=str(exc), code=exc.reason.value) from exc

        logger.info("api_auth.authenticated", sub=session.subject_id, role=session.role.value)
        return (SessionUser(session), token)

    def authenticate_header(self, request):
        """Value for the ``WWW-Authenticate`` response header on 401."""
        return f'{self.keyword} realm="api"'

    @staticmethod
    def _extract_token(header: str) -> str:
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthenticationFailed("Invalid Authorization header format.")
        return parts[1]
