"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


# ============================================================================
# Nested Models
# ============================================================================


class UserInfo(BaseModel):
    """Signed-in user as seen by the caller"""

    id: str
    email: str
    name: Optional[str] = None
    role: str


class SessionGrant(BaseModel):
    """Freshly created session; the token goes into the cookie envelope"""

    token: str
    session_id: str
    expires_at: datetime


# ============================================================================
# Response DTOs
# ============================================================================


class LoginResponse(BaseModel):
    """
    Response for password login, PIN verification and magic login.

    status is "authenticated" (session set) or "pin_required" (no session yet).
    """

    status: str
    user: UserInfo
    session: Optional[SessionGrant] = None


class SessionInfo(BaseModel):
    """Response for session validation"""

    session_id: str
    user_id: str
    email: str
    role: str
    created_at: datetime
    expires_at: datetime


class MessageResponse(BaseModel):
    """Generic acknowledgement that never reveals whether an account exists"""

    status: str
    message: str


class LogoutResponse(BaseModel):
    revoked_count: int
