"""Portal access guard.

Decides, per request for a portal page, whether to allow it or redirect
to a landing page with a reason code.  Evaluation order:

1. no verifiable token             -> login, ``?redirect=<path>``
2. no profile for the subject      -> login, ``?error=account_not_found``
3. profile deactivated             -> login, ``?error=account_inactive``
4. role differs from the required  -> login, ``?error=role_access_required``
5. retailer without a retailer     -> complete-profile, ``?error=profile_incomplete``
6. otherwise                       -> ``Allow`` with the resolved session

Any collaborator failure ends in ``?error=system_error``.  A path with no
usable role rule is treated as step 4.  The guard never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union
from urllib.parse import urlencode
from uuid import UUID

import structlog

from modules.accounts.access import AccessRules
from modules.accounts.constants import (
    REASON_PARAM,
    REQUIRED_ROLE_PARAM,
    RETURN_TARGET_PARAM,
    RedirectReason,
    Role,
)
from modules.accounts.dtos import Identity, Session
from modules.accounts.exceptions import (
    AccessDenied,
    AccessSystemError,
    AccountInactive,
    AccountNotFound,
    ProfileIncomplete,
    RoleMismatch,
    Unauthenticated,
)
from modules.accounts.identity import IIdentityVerifier
from modules.accounts.repositories.interfaces import IProfileRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AccessRequest:
    path: str
    token: Optional[str] = None


@dataclass(frozen=True)
class Allow:
    identity: Optional[Identity]
    role: Optional[Role]
    retailer_id: Optional[UUID] = None
    public: bool = False

    allowed: ClassVar[bool] = True


@dataclass(frozen=True)
class Redirect:
    target: str
    reason: RedirectReason
    required_role: Optional[Role] = None

    allowed: ClassVar[bool] = False


AccessDecision = Union[Allow, Redirect]


# ---------------------------------------------------------------------------
# Session resolution
# ---------------------------------------------------------------------------


def resolve_session(
    token: Optional[str],
    verifier: IIdentityVerifier,
    profiles: IProfileRepository,
) -> Session:
    """Verify *token* and load an active profile for its subject.

    Raises:
        Unauthenticated: missing or unverifiable token.
        AccountNotFound: no profile for the subject.
        AccountInactive: the profile is deactivated.
        AccessSystemError: the verifier or the profile store failed.
    """
    if not token:
        raise Unauthenticated("No identity token.")

    try:
        identity = verifier.verify(token)
    except Exception as exc:
        raise AccessSystemError("Identity verification failed.") from exc
    if identity is None:
        raise Unauthenticated("Identity token did not verify.")

    try:
        profile = profiles.get_profile(identity.subject_id)
    except Exception as exc:
        raise AccessSystemError("Profile lookup failed.") from exc
    if profile is None:
        raise AccountNotFound(f"No profile for {identity.subject_id}.")
    if not profile.is_active:
        raise AccountInactive(f"Profile {identity.subject_id} is inactive.")

    return Session(identity=identity, profile=profile)


def authorize(session: Session, required_role: Optional[Role]) -> None:
    """Check *session* against the role a resource requires.

    Raises:
        RoleMismatch: wrong role, or no role configured for the resource.
        ProfileIncomplete: retailer account without a linked retailer.
    """
    if required_role is None or session.role != required_role:
        raise RoleMismatch(required_role, session.role)
    if required_role == Role.RETAILER and session.profile.retailer_id is None:
        raise ProfileIncomplete(f"Retailer account {session.subject_id} is not provisioned.")


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


def check_access(
    request: AccessRequest,
    required_role: Optional[Role],
    *,
    verifier: IIdentityVerifier,
    profiles: IProfileRepository,
    login_path: str = "/login",
    complete_profile_path: str = "/auth/complete-profile",
) -> AccessDecision:
    """Return ``Allow`` or ``Redirect`` for a protected *request*."""
    log = logger.bind(path=request.path, required_role=required_role)

    if required_role is None:
        log.error("access.required_role_missing")

    try:
        session = resolve_session(request.token, verifier, profiles)
        authorize(session, required_role)
    except AccessDenied as exc:
        if isinstance(exc, AccessSystemError):
            log.error("access.system_error", error=str(exc.__cause__ or exc))
        else:
            log.info("access.denied", reason=exc.reason.value, detail=str(exc))
        return _deny(exc, request, required_role, login_path, complete_profile_path)

    log.info(
        "access.granted",
        subject_id=session.subject_id,
        role=session.role.value,
    )
    return Allow(
        identity=session.identity,
        role=session.role,
        retailer_id=session.profile.retailer_id,
    )


def evaluate_request(
    request: AccessRequest,
    rules: AccessRules,
    *,
    verifier: IIdentityVerifier,
    profiles: IProfileRepository,
) -> AccessDecision:
    """Apply the route table, then ``check_access`` for protected paths."""
    if rules.is_public(request.path):
        return Allow(identity=None, role=None, public=True)
    return check_access(
        request,
        rules.required_role(request.path),
        verifier=verifier,
        profiles=profiles,
        login_path=rules.login_path,
        complete_profile_path=rules.complete_profile_path,
    )


def _deny(
    exc: AccessDenied,
    request: AccessRequest,
    required_role: Optional[Role],
    login_path: str,
    complete_profile_path: str,
) -> Redirect:
    if isinstance(exc, Unauthenticated):
        return Redirect(
            target=_with_query(login_path, {RETURN_TARGET_PARAM: request.path}),
            reason=exc.reason,
        )
    if isinstance(exc, ProfileIncomplete):
        return Redirect(
            target=_with_query(complete_profile_path, {REASON_PARAM: exc.reason.value}),
            reason=exc.reason,
            required_role=required_role,
        )
    params = {REASON_PARAM: exc.reason.value}
    if isinstance(exc, RoleMismatch) and required_role is not None:
        params[REQUIRED_ROLE_PARAM] = required_role.value
    return Redirect(
        target=_with_query(login_path, params),
        reason=exc.reason,
        required_role=required_role if isinstance(exc, RoleMismatch) else None,
    )


def _with_query(path: str, params: dict) -> str:
    return f"{path}?{urlencode(params)}"
