"""
Session Entity

Server-side record of a bearer session cookie.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from ..base import utcnow


class Session(SQLModel, table=True):
    """
    Session entity - one row per signed-in browser.

    Business Rules:
    - Only SHA-256(raw token) is stored; the raw token lives in the cookie
    - Revocation is a soft delete (revoked_at/revoke_reason) and is final
    - last_accessed_at is best-effort and never security relevant
    - Expired rows are removed by the expiry sweeper
    """

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    token_hash: str = Field(max_length=64, unique=True, index=True)
    user_id: UUID = Field(nullable=False, index=True)
    email: str = Field(max_length=255)
    role: str = Field(max_length=50)

    ip: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    revoke_reason: Optional[str] = Field(default=None, max_length=50)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    last_accessed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    __table_args__ = (
        Index("idx_session_expires_at", "expires_at"),
        Index("idx_session_revoked_at", "revoked_at"),
    )
