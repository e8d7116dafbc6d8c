"""
Authorize Use Case

First leg of the authorization code flow.
"""

import logging
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services import pkce
from src.app.services import scopes as scope_catalog
from src.app.services.authorization_code_issuer import AuthorizationCodeIssuer
from src.app.services.oauth_client_registry import OAuthClientRegistry
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, ClientStatus, GrantType, UserStatus
from .dtos import AuthorizeCommand, AuthorizeResponse

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "login_required"


def append_query(uri: str, **params) -> str:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}{query}"


def _redirect_error(command: AuthorizeCommand, code: str, description: str) -> Error:
    """An error the client should receive on its own redirect_uri"""
    return Error(
        code,
        description,
        details={
            "redirect_url": append_query(
                command.redirect_uri,
                error=code,
                error_description=description,
                state=command.state,
            )
        },
    )


class AuthorizeUseCase:
    """
    Use case for GET /oauth/authorize.

    Business Rules:
    - Unknown/inactive client or unregistered redirect_uri is never redirected to
    - Every later error is sent back to the client's redirect_uri
    - openid is always part of the granted scope
    - Every requested scope must be on the client's allow-list
    - PKCE: only S256; mandatory for clients with require_pkce (all public clients)
    - Consent is implicit for registered first-party clients
    - Code is single-use and expires within 10 minutes
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.clients = OAuthClientRegistry(uow, settings)
        self.codes = AuthorizationCodeIssuer(uow, settings)

    async def execute(
        self, command: AuthorizeCommand, user_id: Optional[UUID]
    ) -> Result[AuthorizeResponse]:
        """
        Args:
            command: authorize request parameters
            user_id: signed-in user, or None when there is no valid session

        Returns:
            AuthorizeResponse with the redirect to the client, or Error.
            Errors carrying details["redirect_url"] must be redirected there;
            LOGIN_REQUIRED means the browser has to sign in first.
        """
        async with self.uow:
            client = await self.clients.get(command.client_id)
            if not client or client.status != ClientStatus.active:
                logger.warning(f"event=authorize_rejected reason=invalid_client client_id={command.client_id}")
                return Return.err(Error("invalid_client", "Unknown or inactive client"))

            if not command.redirect_uri or command.redirect_uri not in client.redirect_uris:
                logger.warning(f"event=authorize_rejected reason=redirect_uri client_id={client.client_id}")
                return Return.err(Error("invalid_request", "redirect_uri is not registered for this client"))

            if command.response_type != "code":
                return Return.err(
                    _redirect_error(command, "unsupported_response_type", "Only response_type=code is supported")
                )

            if GrantType.authorization_code.value not in client.grant_types:
                return Return.err(
                    _redirect_error(command, "unauthorized_client", "Client may not use the authorization code grant")
                )

            scope = scope_catalog.ensure_required_scopes(command.scope or "")
            if not await self.clients.validate_scopes(client.client_id, scope):
                return Return.err(
                    _redirect_error(command, "invalid_scope", "Requested scope is not allowed for this client")
                )

            if command.code_challenge:
                if command.code_challenge_method != pkce.S256:
                    return Return.err(
                        _redirect_error(command, "invalid_request", "code_challenge_method must be S256")
                    )
                if not pkce.is_valid_challenge(command.code_challenge):
                    return Return.err(_redirect_error(command, "invalid_request", "Malformed code_challenge"))
            elif client.require_pkce:
                return Return.err(
                    _redirect_error(command, "invalid_request", "code_challenge is required for this client")
                )

            if user_id is None:
                return Return.err(Error(LOGIN_REQUIRED, "User must sign in"))

            user = await self.uow.users.get_by_id(user_id)
            if not user or user.status != UserStatus.active:
                return Return.err(_redirect_error(command, "access_denied", "User is not allowed to sign in"))

            code = await self.codes.create(
                client.client_id,
                user.id,
                command.redirect_uri,
                scope,
                code_challenge=command.code_challenge,
                code_challenge_method=command.code_challenge_method,
                nonce=command.nonce,
            )
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    client_id=client.client_id,
                    action="oauth_authorize",
                    event_metadata={"scope": scope, "pkce": bool(command.code_challenge)},
                )
            )
            await self.uow.commit()

            return Return.ok(
                AuthorizeResponse(
                    redirect_url=append_query(command.redirect_uri, code=code, state=command.state)
                )
            )
