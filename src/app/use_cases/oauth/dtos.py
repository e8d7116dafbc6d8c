"""
OAuth2 / OIDC Use Case DTOs

Command and Response classes for the authorization server.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# ============================================================================
# Command DTOs
# ============================================================================


class AuthorizeCommand(BaseModel):
    """Query parameters of GET /oauth/authorize"""

    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    response_type: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None
    nonce: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None


class TokenCommand(BaseModel):
    """Form fields of POST /oauth/token"""

    grant_type: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    code_verifier: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class RegisterClientCommand(BaseModel):
    name: str
    redirect_uris: List[str]
    allowed_scopes: Optional[List[str]] = None
    grant_types: Optional[List[str]] = None
    description: str = ""
    token_endpoint_auth_method: str = "client_secret_post"
    require_pkce: bool = False
    homepage_uri: Optional[str] = None
    logo_uri: Optional[str] = None


class UpdateClientCommand(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    redirect_uris: Optional[List[str]] = None
    allowed_scopes: Optional[List[str]] = None
    grant_types: Optional[List[str]] = None
    require_pkce: Optional[bool] = None
    homepage_uri: Optional[str] = None
    logo_uri: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class AuthorizeResponse(BaseModel):
    """Where to send the browser: the client's redirect_uri with code and state"""

    redirect_url: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None


class ClientInfo(BaseModel):
    """Public view of a client; never carries the secret hash"""

    client_id: str
    name: str
    description: str
    redirect_uris: List[str]
    allowed_scopes: List[str]
    grant_types: List[str]
    token_endpoint_auth_method: str
    require_pkce: bool
    status: str
    homepage_uri: Optional[str] = None
    logo_uri: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ClientWithSecret(BaseModel):
    """Returned only at registration and secret regeneration"""

    client: ClientInfo
    client_secret: str
