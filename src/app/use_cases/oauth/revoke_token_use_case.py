"""
Revoke Token Use Case

POST /oauth/revoke (RFC 7009).
"""

from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.oauth_client_registry import OAuthClientRegistry
from src.app.services.settings import SecuritySettings
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent


class RevokeTokenUseCase:
    """
    Business Rules:
    - Client must authenticate
    - Only refresh tokens are stateful; access/ID tokens stay valid until exp
    - A client can only revoke its own tokens
    - The answer is success whether or not the token existed
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.clients = OAuthClientRegistry(uow, settings)
        self.tokens = TokenIssuer(uow, settings)

    async def execute(
        self, token: str, client_id: str, client_secret: Optional[str]
    ) -> Result[dict]:
        async with self.uow:
            client = await self.clients.authenticate(client_id, client_secret)
            if not client:
                return Return.err(Error("invalid_client", "Client authentication failed"))

            if not token:
                return Return.err(Error("invalid_request", "token is required"))

            revoked = await self.tokens.revoke(token, client.client_id)
            if revoked:
                await self.uow.audit_events.create(
                    AuditEvent(client_id=client.client_id, action="oauth_token_revoked")
                )
            await self.uow.commit()

            return Return.ok({"success": True})
