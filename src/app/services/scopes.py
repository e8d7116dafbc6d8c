"""
OAuth2 / OIDC scope catalog

Scopes travel as space-separated strings on the wire and as ordered,
de-duplicated lists in memory.
"""

import re
from typing import Iterable, List

OPENID = "openid"
PROFILE = "profile"
EMAIL = "email"
OFFLINE_ACCESS = "offline_access"

STANDARD_SCOPES = [OPENID, PROFILE, EMAIL, OFFLINE_ACCESS]
REQUIRED_SCOPES = [OPENID]

# Resource scopes such as read:cards or write:decks
RESOURCE_SCOPE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*:[a-z0-9_:.-]+$")


def parse_scopes(scope: str) -> List[str]:
    scopes: List[str] = []
    for item in (scope or "").split():
        if item not in scopes:
            scopes.append(item)
    return scopes


def format_scopes(scopes: Iterable[str]) -> str:
    return " ".join(parse_scopes(" ".join(scopes)))


def ensure_required_scopes(scope: str) -> str:
    scopes = parse_scopes(scope)
    for required in reversed(REQUIRED_SCOPES):
        if required not in scopes:
            scopes.insert(0, required)
    return format_scopes(scopes)


def has_scope(scope: str, required: str) -> bool:
    return required in parse_scopes(scope)


def is_subset(requested: str, granted: str) -> bool:
    return set(parse_scopes(requested)).issubset(parse_scopes(granted))


def is_known_scope(scope: str, custom_scopes: Iterable[str] = ()) -> bool:
    return (
        scope in STANDARD_SCOPES
        or scope in custom_scopes
        or bool(RESOURCE_SCOPE_PATTERN.match(scope))
    )


def requires_refresh_token(scope: str) -> bool:
    return has_scope(scope, OFFLINE_ACCESS)


def claims_for_scopes(scope: str) -> List[str]:
    """OIDC claim names released for the granted scope"""
    claims = ["sub"]
    if has_scope(scope, PROFILE):
        claims.extend(["name", "updated_at"])
    if has_scope(scope, EMAIL):
        claims.extend(["email", "email_verified"])
    return claims
