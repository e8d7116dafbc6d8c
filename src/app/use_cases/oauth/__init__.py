"""
OAuth2 / OpenID Connect Use Cases
"""

from .authorize_use_case import LOGIN_REQUIRED, AuthorizeUseCase
from .token_use_case import TokenUseCase
from .revoke_token_use_case import RevokeTokenUseCase
from .introspect_token_use_case import IntrospectTokenUseCase
from .userinfo_use_case import UserInfoUseCase
from .manage_clients_use_case import ManageClientsUseCase
from .dtos import (
    AuthorizeCommand,
    AuthorizeResponse,
    ClientInfo,
    ClientWithSecret,
    RegisterClientCommand,
    TokenCommand,
    TokenResponse,
    UpdateClientCommand,
)

__all__ = [
    # Use Cases
    "AuthorizeUseCase",
    "TokenUseCase",
    "RevokeTokenUseCase",
    "IntrospectTokenUseCase",
    "UserInfoUseCase",
    "ManageClientsUseCase",
    "LOGIN_REQUIRED",
    # DTOs - Commands
    "AuthorizeCommand",
    "TokenCommand",
    "RegisterClientCommand",
    "UpdateClientCommand",
    # DTOs - Responses
    "AuthorizeResponse",
    "TokenResponse",
    "ClientInfo",
    "ClientWithSecret",
]
