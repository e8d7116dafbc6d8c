"""
Identity Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """User account status"""

    active = "active"
    disabled = "disabled"


class UserType(str, Enum):
    """Which population a user belongs to"""

    admin = "admin"
    public = "public"
    org = "org"


class TokenPurpose(str, Enum):
    """What a single-use token may be consumed for"""

    magic_link = "magic_link"
    password_reset = "password_reset"


class ClientStatus(str, Enum):
    """OAuth client status"""

    active = "active"
    suspended = "suspended"


class TokenEndpointAuthMethod(str, Enum):
    """How a client authenticates at the token endpoint"""

    client_secret_post = "client_secret_post"
    client_secret_basic = "client_secret_basic"
    none = "none"


class GrantType(str, Enum):
    authorization_code = "authorization_code"
    refresh_token = "refresh_token"
    client_credentials = "client_credentials"


class RevokeReason(str, Enum):
    """Why a session or refresh token stopped being valid"""

    logout = "logout"
    admin_action = "admin_action"
    password_reset = "password_reset"
    rotated = "rotated"
    reuse_detected = "reuse_detected"
    client_revocation = "client_revocation"
    user_revocation = "user_revocation"
