"""
Confirm Password Reset Use Case

Handles password reset confirmation with signed single-use tokens.
"""

import logging

from libs.result import Error, Result, Return
from src.app.services.passwords import hash_secret
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.single_use_token_store import SingleUseTokenStore
from src.app.services.token_issuer import TokenIssuer
from src.app.services.token_signer import InvalidTokenError
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, RevokeReason, TokenPurpose
from .dtos import MessageResponse

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

INVALID_TOKEN = Error("INVALID_TOKEN", "Invalid or expired token")


class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - New password is validated before the token is touched
    - Token must carry the password_reset purpose, be unexpired and unused
    - Password is hashed with bcrypt (BCRYPT_ROUNDS)
    - Every other outstanding magic link / reset token of the user is burned
    - All sessions and refresh tokens of the user are revoked
    - Audit event created for security tracking
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.tokens = SingleUseTokenStore(uow, settings)
        self.sessions = SessionStore(uow, settings)
        self.token_issuer = TokenIssuer(uow, settings)

    def _validate_password(self, password: str) -> Result[None]:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            return Return.err(
                Error(
                    "INVALID_PASSWORD",
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                )
            )
        return Return.ok(None)

    async def execute(self, token: str, new_password: str) -> Result[MessageResponse]:
        """
        Execute confirm password reset use case.

        Errors:
            - INVALID_PASSWORD: Password does not meet complexity requirements
            - INVALID_TOKEN: any token failure (bad signature, wrong purpose,
              unknown, expired or already used); the reason is only logged
        """
        password_validation = self._validate_password(new_password)
        if password_validation.is_err():
            return Return.err(password_validation.error)

        async with self.uow:
            try:
                consumed = await self.tokens.consume(token, TokenPurpose.password_reset)
            except InvalidTokenError:
                logger.info("event=password_reset_rejected reason=bad_signature")
                return Return.err(INVALID_TOKEN)

            if consumed.is_err():
                logger.info(f"event=password_reset_rejected reason={consumed.error.code}")
                return Return.err(INVALID_TOKEN)

            record = consumed.value
            user = await self.uow.users.get_by_id(record.user_id)
            if user is None:
                await self.uow.commit()
                return Return.err(INVALID_TOKEN)

            user.password_hash = hash_secret(new_password, self.settings.bcrypt_rounds)
            user.updated_at = utcnow()
            await self.uow.users.update(user)

            invalidated = await self.tokens.invalidate_by_user(user.id)
            sessions_revoked = await self.sessions.revoke_all(
                user.id, RevokeReason.password_reset.value
            )
            refresh_revoked = await self.token_issuer.revoke_for_user(
                user.id, RevokeReason.password_reset
            )

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="password_reset_confirmed",
                    event_metadata={
                        "jti": record.jti,
                        "tokens_invalidated": invalidated,
                        "sessions_revoked": sessions_revoked,
                        "refresh_tokens_revoked": refresh_revoked,
                    },
                )
            )
            await self.uow.commit()

            return Return.ok(
                MessageResponse(status="success", message="Password has been reset successfully")
            )
