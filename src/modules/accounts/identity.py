"""Identity-token verification.

Tokens are JWTs issued by the hosted identity provider and signed with a
shared secret.

Security decisions
------------------
* ``algorithms`` is pinned to the configured value, never read from the
  token header (prevents algorithm-confusion attacks).
* Audience is always validated; issuer is validated when configured.
* ``exp`` and ``sub`` are mandatory.
"""

from __future__ import annotations

from typing import Optional, Protocol

import jwt as pyjwt
import structlog
from django.conf import settings
from jwt.exceptions import PyJWTError

from modules.accounts.dtos import Identity

logger = structlog.get_logger(__name__)


class IIdentityVerifier(Protocol):
    def verify(self, token: str) -> Optional[Identity]: ...


class JWTIdentityVerifier:
    """Verify HMAC-signed identity tokens with PyJWT."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str = "authenticated",
        issuer: str = "",
        leeway: int = 0,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._issuer = issuer
        self._leeway = leeway

    def verify(self, token: str) -> Optional[Identity]:
        """Return the token's ``Identity``, or ``None`` if it does not verify."""
        if not token or not self._secret:
            return None
        options = {"require": ["exp", "sub"]}
        kwargs = {"issuer": self._issuer} if self._issuer else {}
        try:
            payload = pyjwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                leeway=self._leeway,
                options=options,
                **kwargs,
            )
        except PyJWTError as exc:
            logger.info("identity.token_rejected", error=str(exc))
            return None
        return Identity(subject_id=str(payload["sub"]), email=payload.get("email"))


def get_identity_verifier() -> JWTIdentityVerifier:
    """Build the verifier from ``settings.AUTH_JWT_*``."""
    return JWTIdentityVerifier(
        secret=settings.AUTH_JWT_SECRET,
        algorithm=settings.AUTH_JWT_ALGORITHM,
        audience=settings.AUTH_JWT_AUDIENCE,
        issuer=settings.AUTH_JWT_ISSUER,
        leeway=settings.AUTH_JWT_LEEWAY,
    )
