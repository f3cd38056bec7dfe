"""Route table for the portal access guard.

Built once from ``settings.ACCESS_CONTROL`` and never mutated afterwards.
Paths are matched on segment boundaries: ``/retail/`` covers ``/retail``
and ``/retail/cart`` but not ``/retailers``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

import structlog

from modules.accounts.constants import Role

logger = structlog.get_logger(__name__)


def _normalize_prefix(prefix: str) -> str:
    return "/" + prefix.strip("/") if prefix.strip("/") else "/"


def path_has_prefix(path: str, prefix: str) -> bool:
    """``True`` when *path* equals *prefix* or lies beneath it."""
    prefix = _normalize_prefix(prefix)
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class AccessRules:
    login_path: str = "/login"
    complete_profile_path: str = "/auth/complete-profile"
    public_paths: frozenset = frozenset()
    public_prefixes: Tuple[str, ...] = ()
    bypass_prefixes: Tuple[str, ...] = ()
    role_rules: Mapping[str, Optional[Role]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_settings(cls, conf: Mapping[str, Any]) -> AccessRules:
        login_path = conf.get("LOGIN_PATH", "/login")
        complete_profile_path = conf.get("COMPLETE_PROFILE_PATH", "/auth/complete-profile")
        public_paths = set(conf.get("PUBLIC_PATHS", ()))
        # landing pages must stay reachable or every redirect would loop
        public_paths.update({login_path, complete_profile_path})
        return cls(
            login_path=login_path,
            complete_profile_path=complete_profile_path,
            public_paths=frozenset(public_paths),
            public_prefixes=tuple(conf.get("PUBLIC_PREFIXES", ())),
            bypass_prefixes=tuple(conf.get("BYPASS_PREFIXES", ())),
            role_rules=MappingProxyType(_parse_role_rules(conf.get("ROLE_RULES", {}))),
        )

    def bypasses(self, path: str) -> bool:
        """Static assets and the API transport never reach the guard.

        A file name outside every role rule (``/favicon.ico``) is treated as
        an asset; anything under a role rule is always guarded, dotted or not.
        """
        if any(path_has_prefix(path, prefix) for prefix in self.bypass_prefixes):
            return True
        if self.matched_rule(path) is not None:
            return False
        last_segment = path.rsplit("/", 1)[-1]
        return "." in last_segment

    def is_public(self, path: str) -> bool:
        if path in self.public_paths:
            return True
        return any(path_has_prefix(path, prefix) for prefix in self.public_prefixes)

    def matched_rule(self, path: str) -> Optional[str]:
        """Longest role-rule prefix covering *path*, if any."""
        matches = [prefix for prefix in self.role_rules if path_has_prefix(path, prefix)]
        if not matches:
            return None
        return max(matches, key=len)

    def required_role(self, path: str) -> Optional[Role]:
        """Role required for *path*; ``None`` means no usable rule (deny)."""
        prefix = self.matched_rule(path)
        if prefix is None:
            return None
        return self.role_rules[prefix]


def _parse_role_rules(rules: Mapping[str, Any]) -> dict:
    parsed = {}
    for prefix, value in rules.items():
        parsed[prefix] = _coerce_role(prefix, value)
    return parsed


def _coerce_role(prefix: str, value: Any) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        logger.warning("access.invalid_role_rule", prefix=prefix, value=value)
        return None


