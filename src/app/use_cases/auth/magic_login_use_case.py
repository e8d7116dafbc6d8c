"""
Magic Login Use Case

Exchanges a magic link token for a session.
"""

import logging
from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.single_use_token_store import SingleUseTokenStore
from src.app.services.token_signer import InvalidTokenError
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, TokenPurpose, UserStatus
from .dtos import LoginResponse, SessionGrant
from .login_use_case import user_info

logger = logging.getLogger(__name__)

# Every link failure looks the same to the caller
INVALID_TOKEN = Error("INVALID_TOKEN", "Invalid or expired token")


class MagicLoginUseCase:
    """
    Use case for magic link login.

    Business Rules:
    - Token must carry the magic_link purpose and a valid signature
    - Token is consumed exactly once, even under concurrent requests
    - Every failure is reported as "Invalid or expired token"
    - Magic login does not trigger step-up: the link is itself a second factor
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.tokens = SingleUseTokenStore(uow, settings)
        self.sessions = SessionStore(uow, settings)

    async def execute(
        self, token: str, ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> Result[LoginResponse]:
        async with self.uow:
            try:
                consumed = await self.tokens.consume(token, TokenPurpose.magic_link)
            except InvalidTokenError:
                logger.info("event=magic_login_rejected reason=bad_signature")
                return Return.err(INVALID_TOKEN)

            if consumed.is_err():
                logger.info(f"event=magic_login_rejected reason={consumed.error.code}")
                return Return.err(INVALID_TOKEN)

            record = consumed.value
            user = await self.uow.users.get_by_id(record.user_id)
            if user is None or user.status != UserStatus.active:
                await self.uow.commit()
                logger.warning(f"event=magic_login_rejected reason=no_active_user jti={record.jti}")
                return Return.err(INVALID_TOKEN)

            user.last_login_at = utcnow()
            user = await self.uow.users.update(user)
            created = await self.sessions.create(
                user.id, user.email, user.role, ip=ip, user_agent=user_agent
            )
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="login",
                    event_metadata={"ip": ip, "method": "magic_link", "jti": record.jti},
                )
            )
            await self.uow.commit()

            return Return.ok(
                LoginResponse(
                    status="authenticated",
                    user=user_info(user),
                    session=SessionGrant(
                        token=created.token,
                        session_id=str(created.session_id),
                        expires_at=created.expires_at,
                    ),
                )
            )
