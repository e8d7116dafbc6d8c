"""
Introspect Token Use Case

POST /oauth/introspect (RFC 7662).
"""

import logging
from datetime import UTC
from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.oauth_client_registry import OAuthClientRegistry
from src.app.services.settings import SecuritySettings
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import TokenEndpointAuthMethod

logger = logging.getLogger(__name__)

INACTIVE = {"active": False}


class IntrospectTokenUseCase:
    """
    Use case for token introspection.

    Business Rules:
    - Only confidential clients may introspect
    - Access tokens are checked by signature, issuer and expiry alone
    - A refresh token is reported only to the client it was issued to
    - Anything else, including a malformed token, is {"active": false}
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.clients = OAuthClientRegistry(uow, settings)
        self.tokens = TokenIssuer(uow, settings)

    async def execute(
        self,
        token: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_type_hint: Optional[str] = None,
    ) -> Result[dict]:
        async with self.uow:
            client = await self.clients.authenticate(client_id, client_secret)
            if not client or client.token_endpoint_auth_method == TokenEndpointAuthMethod.none:
                return Return.err(Error("invalid_client", "Client authentication failed"))

            if not token:
                return Return.err(Error("invalid_request", "token is required"))

            if token_type_hint == "refresh_token":
                order = (self._refresh_token, self._access_token)
            else:
                order = (self._access_token, self._refresh_token)

            for lookup in order:
                answer = await lookup(token, client.client_id)
                if answer:
                    return Return.ok(answer)

            logger.info(f"event=introspection_inactive client_id={client.client_id}")
            return Return.ok(dict(INACTIVE))

    async def _access_token(self, token: str, client_id: str) -> Optional[dict]:
        verified = self.tokens.verify_access_token(token)
        if verified.is_err():
            return None

        claims = verified.value
        return {
            "active": True,
            "scope": claims.get("scope", ""),
            "client_id": claims.get("client_id") or claims.get("aud"),
            "username": claims["sub"],
            "token_type": "Bearer",
            "exp": claims["exp"],
            "iat": claims["iat"],
            "sub": claims["sub"],
            "aud": claims.get("aud"),
            "iss": claims.get("iss"),
            "jti": claims.get("jti"),
        }

    async def _refresh_token(self, token: str, client_id: str) -> Optional[dict]:
        record = await self.tokens.find_active_refresh_token(token)
        if not record or record.client_id != client_id:
            return None

        return {
            "active": True,
            "scope": record.scope,
            "client_id": record.client_id,
            "username": str(record.user_id),
            "token_type": "refresh_token",
            "exp": int(record.expires_at.replace(tzinfo=UTC).timestamp()),
            "iat": int(record.created_at.replace(tzinfo=UTC).timestamp()),
            "sub": str(record.user_id),
        }
