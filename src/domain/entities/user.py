"""
User Entity

A person who can sign in to the identity provider.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import UserStatus, UserType
from ..base import utcnow


class User(SQLModel, table=True):
    """
    User entity - a person who authenticates against the SSO.

    Business Rules:
    - Email must be unique across all users (stored lowercased)
    - Password stored as bcrypt hash
    - login_count drives the step-up PIN policy
    - step_up_pending stays set until a PIN is verified
    - Disabled users cannot sign in by any method
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    status: UserStatus = Field(default=UserStatus.active)
    user_type: UserType = Field(default=UserType.public)
    role: str = Field(default="user", max_length=50)
    org_id: Optional[UUID] = Field(default=None)

    email_verified: bool = Field(default=True)
    login_count: int = Field(default=0)
    step_up_pending: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_user_type_status", "user_type", "status"),)
