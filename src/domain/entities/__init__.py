"""
Identity Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    UserStatus,
    UserType,
    TokenPurpose,
    ClientStatus,
    TokenEndpointAuthMethod,
    GrantType,
    RevokeReason,
)

# Export all entities
from .user import User
from .session import Session
from .single_use_token import SingleUseToken
from .login_pin import LoginPin
from .oauth_client import OAuthClient
from .authorization_code import AuthorizationCode
from .refresh_token import RefreshToken
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "UserStatus",
    "UserType",
    "TokenPurpose",
    "ClientStatus",
    "TokenEndpointAuthMethod",
    "GrantType",
    "RevokeReason",
    # Entities
    "User",
    "Session",
    "SingleUseToken",
    "LoginPin",
    "OAuthClient",
    "AuthorizationCode",
    "RefreshToken",
    "AuditEvent",
]
