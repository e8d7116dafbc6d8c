"""
OAuthClient Entity

A registered relying-party application.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import JSON, Column, DateTime, Field, SQLModel

from .enums import ClientStatus, TokenEndpointAuthMethod
from ..base import generate_uuid, utcnow


class OAuthClient(SQLModel, table=True):
    """
    OAuthClient entity - a third-party application allowed to use the SSO.

    Business Rules:
    - client_secret_hash is bcrypt; the plaintext is shown once at creation
    - redirect_uris are matched by exact string equality
    - allowed_scopes is the client's scope allow-list
    - Only status=active clients can authorize or exchange codes
    """

    __tablename__ = "oauth_clients"

    client_id: str = Field(default_factory=generate_uuid, primary_key=True, max_length=36)
    client_secret_hash: str = Field(max_length=60)

    name: str = Field(max_length=255)
    description: str = Field(default="", max_length=1024)

    redirect_uris: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    allowed_scopes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    grant_types: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    token_endpoint_auth_method: TokenEndpointAuthMethod = Field(
        default=TokenEndpointAuthMethod.client_secret_post
    )
    require_pkce: bool = Field(default=False)
    status: ClientStatus = Field(default=ClientStatus.active)

    owner_user_id: Optional[UUID] = Field(default=None)
    homepage_uri: Optional[str] = Field(default=None, max_length=1024)
    logo_uri: Optional[str] = Field(default=None, max_length=1024)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
