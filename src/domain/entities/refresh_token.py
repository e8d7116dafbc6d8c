"""
RefreshToken Entity

Opaque, rotating OAuth2 refresh tokens.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from ..base import utcnow


class RefreshToken(SQLModel, table=True):
    """
    RefreshToken entity - one link of a rotation chain.

    Business Rules:
    - Stored as SHA-256 hash
    - Every use rotates: a new token in the same chain, the old one revoked
    - Presenting a rotated token again revokes the whole chain
    - Expires after 30 days without use
    """

    __tablename__ = "refresh_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    token_hash: str = Field(max_length=64, unique=True, index=True)
    chain_id: UUID = Field(default_factory=uuid4, index=True)
    parent_token_hash: Optional[str] = Field(default=None, max_length=64)

    client_id: str = Field(max_length=36, index=True)
    user_id: UUID = Field(index=True)
    scope: str = Field(max_length=1024)

    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    revoke_reason: Optional[str] = Field(default=None, max_length=50)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    last_used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_refresh_token_expires_at", "expires_at"),)
