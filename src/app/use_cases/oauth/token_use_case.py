"""
Token Use Case

POST /oauth/token for the authorization_code, refresh_token and
client_credentials grants.
"""

import logging

from libs.result import Error, Result, Return
from src.app.services import scopes as scope_catalog
from src.app.services.authorization_code_issuer import AuthorizationCodeIssuer
from src.app.services.oauth_client_registry import OAuthClientRegistry
from src.app.services.settings import SecuritySettings
from src.app.services.token_issuer import TokenIssuer, TokenSet
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, GrantType, TokenEndpointAuthMethod, UserStatus
from .dtos import TokenCommand, TokenResponse

logger = logging.getLogger(__name__)

SUPPORTED_GRANT_TYPES = {g.value for g in GrantType}


def _to_response(tokens: TokenSet) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        scope=tokens.scope,
        refresh_token=tokens.refresh_token,
        id_token=tokens.id_token,
    )


class TokenUseCase:
    """
    Use case for the token endpoint.

    Business Rules:
    - Client authenticates first (secret, or none for public clients)
    - Client must be allowed the requested grant type
    - Code exchange: code, redirect_uri and PKCE verifier must match issuance;
      the code is burned atomically so at most one exchange succeeds
    - A refresh token is issued only with offline_access and the
      refresh_token grant
    - Refresh: rotation on every use; reuse of a rotated token revokes the
      whole chain and is audit-logged
    - Client credentials: confidential clients only, no user, no refresh or
      ID token; scope defaults to the client's non-OIDC allowed scopes
    - Errors use RFC 6749 codes exactly
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.clients = OAuthClientRegistry(uow, settings)
        self.codes = AuthorizationCodeIssuer(uow, settings)
        self.tokens = TokenIssuer(uow, settings)

    async def execute(self, command: TokenCommand) -> Result[TokenResponse]:
        async with self.uow:
            client = await self.clients.authenticate(command.client_id, command.client_secret)
            if not client:
                return Return.err(Error("invalid_client", "Client authentication failed"))

            grant_type = command.grant_type
            if grant_type not in SUPPORTED_GRANT_TYPES:
                return Return.err(Error("unsupported_grant_type", "Unsupported grant_type"))

            if grant_type not in client.grant_types:
                return Return.err(Error("unauthorized_client", "Client may not use this grant type"))

            if grant_type == GrantType.authorization_code.value:
                return await self._exchange_code(client, command)
            if grant_type == GrantType.client_credentials.value:
                return await self._client_credentials(client, command)
            return await self._refresh(client, command)

    async def _exchange_code(self, client, command: TokenCommand) -> Result[TokenResponse]:
        if not command.code or not command.redirect_uri:
            return Return.err(Error("invalid_request", "code and redirect_uri are required"))

        exchanged = await self.codes.exchange(
            command.code, client.client_id, command.redirect_uri, command.code_verifier
        )
        if exchanged.is_err():
            return exchanged

        grant = exchanged.value
        user = await self.uow.users.get_by_id(grant.user_id)
        if not user or user.status != UserStatus.active:
            await self.uow.commit()
            return Return.err(Error("invalid_grant", "Invalid authorization code"))

        with_refresh = (
            scope_catalog.requires_refresh_token(grant.scope)
            and GrantType.refresh_token.value in client.grant_types
        )
        tokens = await self.tokens.issue_tokens(
            user, client.client_id, grant.scope, nonce=grant.nonce, with_refresh_token=with_refresh
        )

        await self.uow.audit_events.create(
            AuditEvent(
                user_id=user.id,
                client_id=client.client_id,
                action="oauth_token_issued",
                event_metadata={"grant_type": "authorization_code", "scope": grant.scope},
            )
        )
        await self.uow.commit()
        return Return.ok(_to_response(tokens))

    async def _refresh(self, client, command: TokenCommand) -> Result[TokenResponse]:
        if not command.refresh_token:
            return Return.err(Error("invalid_request", "refresh_token is required"))

        refreshed = await self.tokens.refresh(command.refresh_token, client.client_id, command.scope)

        if refreshed.is_err():
            if refreshed.error.details.get("reuse_detected"):
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=refreshed.error.details.get("user_id"),
                        client_id=client.client_id,
                        action="refresh_token_reuse_detected",
                        event_metadata={"chain_id": refreshed.error.details.get("chain_id")},
                    )
                )
            # Chain revocations must persist even though the grant failed
            await self.uow.commit()
            return Return.err(Error(refreshed.error.code, refreshed.error.message))

        await self.uow.commit()
        return Return.ok(_to_response(refreshed.value))

    async def _client_credentials(self, client, command: TokenCommand) -> Result[TokenResponse]:
        if client.token_endpoint_auth_method == TokenEndpointAuthMethod.none:
            return Return.err(Error("unauthorized_client", "Public clients cannot use client_credentials"))

        if command.scope:
            requested = scope_catalog.parse_scopes(command.scope)
        else:
            requested = [s for s in client.allowed_scopes if s not in scope_catalog.STANDARD_SCOPES]

        for item in requested:
            if item in scope_catalog.STANDARD_SCOPES or item not in client.allowed_scopes:
                logger.warning(f"event=client_credentials_rejected client_id={client.client_id} scope={item}")
                return Return.err(Error("invalid_scope", f"Scope '{item}' is not allowed for this client"))

        scope = scope_catalog.format_scopes(requested)
        access_token = self.tokens.issue_client_access_token(client.client_id, scope)

        await self.uow.audit_events.create(
            AuditEvent(
                client_id=client.client_id,
                action="oauth_token_issued",
                event_metadata={"grant_type": "client_credentials", "scope": scope},
            )
        )
        await self.uow.commit()
        logger.info(f"event=client_credentials_issued client_id={client.client_id} scope={scope}")
        return Return.ok(
            TokenResponse(
                access_token=access_token,
                expires_in=self.settings.access_token_ttl_seconds,
                scope=scope,
            )
        )
