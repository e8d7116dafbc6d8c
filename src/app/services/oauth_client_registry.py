"""
OAuth Client Registry

Registration, secret verification and redirect/scope checks for the
applications allowed to use the authorization server.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services import scopes as scope_catalog
from src.app.services.passwords import check_secret, dummy_check, hash_secret
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import generate_uuid, utcnow
from src.domain.entities import (
    ClientStatus,
    GrantType,
    OAuthClient,
    TokenEndpointAuthMethod,
)

logger = logging.getLogger(__name__)

DEFAULT_GRANT_TYPES = [GrantType.authorization_code.value, GrantType.refresh_token.value]
DEFAULT_ALLOWED_SCOPES = [scope_catalog.OPENID, scope_catalog.PROFILE, scope_catalog.EMAIL]

UPDATABLE_FIELDS = {
    "name",
    "description",
    "redirect_uris",
    "allowed_scopes",
    "grant_types",
    "require_pkce",
    "homepage_uri",
    "logo_uri",
}


@dataclass(frozen=True)
class RegisteredClient:
    client: OAuthClient
    client_secret: str


def generate_client_secret() -> str:
    return secrets.token_urlsafe(32)


def with_openid(allowed_scopes: List[str]) -> List[str]:
    """Every client may request openid; authorize always adds it"""
    scopes = list(allowed_scopes)
    if scope_catalog.OPENID not in scopes:
        scopes.insert(0, scope_catalog.OPENID)
    return scopes


class OAuthClientRegistry:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings

    def _check_redirect_uris(self, redirect_uris: List[str]) -> Optional[Error]:
        if not redirect_uris:
            return Error("INVALID_CLIENT_METADATA", "At least one redirect URI is required")

        for uri in redirect_uris:
            parsed = urlparse(uri)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                return Error("INVALID_CLIENT_METADATA", f"Invalid redirect URI: {uri}")
            if parsed.fragment:
                return Error("INVALID_CLIENT_METADATA", f"Redirect URI must not contain a fragment: {uri}")
            if self.settings.is_production:
                if parsed.scheme != "https":
                    return Error("INVALID_CLIENT_METADATA", f"Redirect URI must use HTTPS: {uri}")
                if parsed.hostname in ("localhost", "127.0.0.1"):
                    return Error("INVALID_CLIENT_METADATA", f"Localhost redirect URIs are not allowed: {uri}")
        return None

    def _check_scopes(self, allowed_scopes: List[str]) -> Optional[Error]:
        for scope in allowed_scopes:
            if not scope_catalog.is_known_scope(scope, self.settings.custom_scopes):
                return Error("INVALID_CLIENT_METADATA", f"Unknown scope: {scope}")
        return None

    def _check_grant_types(
        self, grant_types: List[str], auth_method: TokenEndpointAuthMethod
    ) -> Optional[Error]:
        valid = {g.value for g in GrantType}
        if not grant_types or any(g not in valid for g in grant_types):
            return Error("INVALID_CLIENT_METADATA", "Unsupported grant type")
        if (
            auth_method == TokenEndpointAuthMethod.none
            and GrantType.client_credentials.value in grant_types
        ):
            return Error("INVALID_CLIENT_METADATA", "Public clients cannot use client_credentials")
        return None

    async def register(
        self,
        name: str,
        redirect_uris: List[str],
        allowed_scopes: Optional[List[str]] = None,
        grant_types: Optional[List[str]] = None,
        description: str = "",
        token_endpoint_auth_method: TokenEndpointAuthMethod = TokenEndpointAuthMethod.client_secret_post,
        require_pkce: bool = False,
        owner_user_id: Optional[UUID] = None,
        homepage_uri: Optional[str] = None,
        logo_uri: Optional[str] = None,
    ) -> Result[RegisteredClient]:
        """
        Register a client. The plaintext secret is only ever returned here.

        Public clients (token_endpoint_auth_method=none) always require PKCE.
        """
        if not name or not name.strip():
            return Return.err(Error("INVALID_CLIENT_METADATA", "Client name is required"))

        allowed_scopes = list(allowed_scopes or DEFAULT_ALLOWED_SCOPES)
        grant_types = list(grant_types or DEFAULT_GRANT_TYPES)

        for error in (
            self._check_redirect_uris(redirect_uris),
            self._check_scopes(allowed_scopes),
            self._check_grant_types(grant_types, token_endpoint_auth_method),
        ):
            if error:
                return Return.err(error)

        allowed_scopes = with_openid(allowed_scopes)

        is_public = token_endpoint_auth_method == TokenEndpointAuthMethod.none
        client_secret = generate_client_secret()

        client = await self.uow.oauth_clients.create(
            OAuthClient(
                client_id=generate_uuid(),
                client_secret_hash=hash_secret(client_secret, self.settings.bcrypt_rounds),
                name=name.strip(),
                description=description,
                redirect_uris=list(redirect_uris),
                allowed_scopes=allowed_scopes,
                grant_types=grant_types,
                token_endpoint_auth_method=token_endpoint_auth_method,
                require_pkce=require_pkce or is_public,
                owner_user_id=owner_user_id,
                homepage_uri=homepage_uri,
                logo_uri=logo_uri,
            )
        )

        logger.info(f"event=client_registered client_id={client.client_id} name={client.name}")
        return Return.ok(RegisteredClient(client=client, client_secret=client_secret))

    async def get(self, client_id: str) -> Optional[OAuthClient]:
        if not client_id:
            return None
        return await self.uow.oauth_clients.get_by_client_id(client_id)

    async def list(self) -> List[OAuthClient]:
        return await self.uow.oauth_clients.list_all()

    async def verify(self, client_id: str, client_secret: str) -> Optional[OAuthClient]:
        """
        Check a client secret. Returns None on any failure without saying why.
        """
        client = await self.get(client_id)
        if not client or not client_secret:
            dummy_check(client_secret, self.settings.bcrypt_rounds)
            logger.warning(f"event=client_verification_failed client_id={client_id}")
            return None

        valid = check_secret(client_secret, client.client_secret_hash)
        if not valid or client.status != ClientStatus.active:
            logger.warning(f"event=client_verification_failed client_id={client_id}")
            return None
        return client

    async def authenticate(
        self, client_id: str, client_secret: Optional[str]
    ) -> Optional[OAuthClient]:
        """Token endpoint authentication: public clients present no secret"""
        client = await self.get(client_id)
        if client and client.token_endpoint_auth_method == TokenEndpointAuthMethod.none:
            if client.status != ClientStatus.active or client_secret:
                logger.warning(f"event=client_verification_failed client_id={client_id}")
                return None
            return client
        return await self.verify(client_id, client_secret)

    async def validate_redirect_uri(self, client_id: str, redirect_uri: str) -> bool:
        """Exact string match against the registered list"""
        client = await self.get(client_id)
        if not client or not redirect_uri:
            return False
        return redirect_uri in client.redirect_uris

    async def validate_scopes(self, client_id: str, scope: str) -> bool:
        """Every requested scope must be in the client's allow-list"""
        client = await self.get(client_id)
        if not client:
            return False
        requested = scope_catalog.parse_scopes(scope)
        return all(item in client.allowed_scopes for item in requested)

    async def regenerate_secret(self, client_id: str) -> Result[RegisteredClient]:
        """The previous secret stops working as soon as this commits"""
        client = await self.get(client_id)
        if not client:
            return Return.err(Error("CLIENT_NOT_FOUND", "Client not found"))

        client_secret = generate_client_secret()
        client.client_secret_hash = hash_secret(client_secret, self.settings.bcrypt_rounds)
        client.updated_at = utcnow()
        client = await self.uow.oauth_clients.update(client)

        logger.info(f"event=client_secret_regenerated client_id={client_id}")
        return Return.ok(RegisteredClient(client=client, client_secret=client_secret))

    async def update(self, client_id: str, **changes) -> Result[OAuthClient]:
        client = await self.get(client_id)
        if not client:
            return Return.err(Error("CLIENT_NOT_FOUND", "Client not found"))

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            return Return.err(
                Error("INVALID_CLIENT_METADATA", f"Fields cannot be updated: {', '.join(sorted(unknown))}")
            )

        if "redirect_uris" in changes:
            error = self._check_redirect_uris(changes["redirect_uris"])
            if error:
                return Return.err(error)
        if "allowed_scopes" in changes:
            error = self._check_scopes(changes["allowed_scopes"])
            if error:
                return Return.err(error)
            changes["allowed_scopes"] = with_openid(changes["allowed_scopes"])
        if "grant_types" in changes:
            error = self._check_grant_types(changes["grant_types"], client.token_endpoint_auth_method)
            if error:
                return Return.err(error)

        for field, value in changes.items():
            setattr(client, field, list(value) if isinstance(value, list) else value)
        if client.token_endpoint_auth_method == TokenEndpointAuthMethod.none:
            client.require_pkce = True
        client.updated_at = utcnow()

        client = await self.uow.oauth_clients.update(client)
        logger.info(f"event=client_updated client_id={client_id} fields={sorted(changes)}")
        return Return.ok(client)

    async def set_status(self, client_id: str, status: ClientStatus) -> Result[OAuthClient]:
        client = await self.get(client_id)
        if not client:
            return Return.err(Error("CLIENT_NOT_FOUND", "Client not found"))

        client.status = status
        client.updated_at = utcnow()
        client = await self.uow.oauth_clients.update(client)
        logger.info(f"event=client_status_changed client_id={client_id} status={status.value}")
        return Return.ok(client)

    async def delete(self, client_id: str) -> bool:
        deleted = await self.uow.oauth_clients.delete(client_id)
        if deleted:
            logger.info(f"event=client_deleted client_id={client_id}")
        return deleted
