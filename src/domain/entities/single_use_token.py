"""
SingleUseToken Entity

Signed, consume-once tokens (magic links, password resets).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import TokenPurpose, UserType
from ..base import utcnow


class SingleUseToken(SQLModel, table=True):
    """
    SingleUseToken entity - state of one issued magic link or reset token.

    Business Rules:
    - The raw token is never stored, only its SHA-256 hash
    - jti and token_hash are both unique
    - purpose prevents a magic link being used as a reset token and vice versa
    - used_at is set exactly once, through a conditional update
    """

    __tablename__ = "single_use_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    jti: str = Field(max_length=36, unique=True, index=True)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    purpose: TokenPurpose

    user_type: UserType
    user_id: UUID = Field(index=True)
    org_id: Optional[UUID] = Field(default=None)
    email: str = Field(max_length=255)

    created_by_ip: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_single_use_token_expires_at", "expires_at"),
        Index("idx_single_use_token_user_purpose", "user_id", "purpose"),
    )
