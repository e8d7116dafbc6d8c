"""
UserInfo Use Case

OIDC userinfo endpoint backed by a bearer access token.
"""

from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.settings import SecuritySettings
from src.app.services.token_issuer import CLIENT_CREDENTIALS, TokenIssuer, user_claims
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import UserStatus


class UserInfoUseCase:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.tokens = TokenIssuer(uow, settings)

    async def execute(self, access_token: str) -> Result[dict]:
        verified = self.tokens.verify_access_token(access_token)
        if verified.is_err():
            return verified

        claims = verified.value
        # Client credentials tokens have no user behind them
        if claims.get("gty") == CLIENT_CREDENTIALS:
            return Return.err(Error("invalid_token", "Token does not identify a user"))
        try:
            user_id = UUID(claims["sub"])
        except (KeyError, ValueError):
            return Return.err(Error("invalid_token", "Invalid or expired token"))

        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if not user or user.status != UserStatus.active:
                return Return.err(Error("invalid_token", "Invalid or expired token"))
            return Return.ok(user_claims(user, claims.get("scope", "")))
