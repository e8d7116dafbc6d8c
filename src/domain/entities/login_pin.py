"""
LoginPin Entity

Short-lived numeric step-up code.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import UserType
from ..base import utcnow


class LoginPin(SQLModel, table=True):
    """
    LoginPin entity - one step-up challenge.

    Business Rules:
    - Only a keyed hash of the 6-digit PIN is stored
    - attempts_remaining is decremented before every comparison
    - used_at marks the record terminal (verified, expired or superseded)
    - attempts_remaining == 0 locks the PIN until it expires
    - Expires after 5 minutes
    """

    __tablename__ = "login_pins"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(index=True)
    user_type: UserType
    email: str = Field(max_length=255)

    pin_hash: str = Field(max_length=64)
    attempts_remaining: int = Field(default=3)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_login_pin_expires_at", "expires_at"),
        Index("idx_login_pin_user_type", "user_id", "user_type"),
    )
