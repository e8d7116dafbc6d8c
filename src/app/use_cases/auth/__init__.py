"""
Authentication Use Cases

All authentication-related business logic.
"""

from .login_use_case import LoginUseCase
from .verify_pin_use_case import VerifyPinUseCase
from .request_magic_link_use_case import RequestMagicLinkUseCase
from .magic_login_use_case import MagicLoginUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .validate_session_use_case import ValidateSessionUseCase
from .logout_use_case import LogoutUseCase
from .dtos import (
    LoginResponse,
    LogoutResponse,
    MessageResponse,
    SessionGrant,
    SessionInfo,
    UserInfo,
)

__all__ = [
    # Use Cases
    "LoginUseCase",
    "VerifyPinUseCase",
    "RequestMagicLinkUseCase",
    "MagicLoginUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    "ValidateSessionUseCase",
    "LogoutUseCase",
    # DTOs - Responses
    "LoginResponse",
    "LogoutResponse",
    "MessageResponse",
    "SessionInfo",
    # DTOs - Nested Models
    "SessionGrant",
    "UserInfo",
]
