"""
AuthorizationCode Entity

Short-lived, single-use OAuth2 authorization codes.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from ..base import utcnow


class AuthorizationCode(SQLModel, table=True):
    """
    AuthorizationCode entity - binds an authorize decision to a later exchange.

    Business Rules:
    - Stored by SHA-256 hash of the code
    - Expires at most 10 minutes after issuance
    - Exchanged at most once (used_at set by conditional update)
    - redirect_uri and client_id at exchange must equal those at issuance
    """

    __tablename__ = "authorization_codes"

    code_hash: str = Field(primary_key=True, max_length=64)

    client_id: str = Field(max_length=36, index=True)
    user_id: UUID
    redirect_uri: str = Field(max_length=2048)
    scope: str = Field(max_length=1024)
    nonce: Optional[str] = Field(default=None, max_length=255)

    code_challenge: Optional[str] = Field(default=None, max_length=128)
    code_challenge_method: Optional[str] = Field(default=None, max_length=10)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_authorization_code_expires_at", "expires_at"),)
