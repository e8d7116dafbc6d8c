"""
Request Password Reset Use Case

Handles generating and sending password reset tokens.
"""

import logging
from typing import Optional

from libs.result import Result, Return
from src.app.services.notifier import INotifier
from src.app.services.rate_limiter import IRateLimiter, check_rate_limit
from src.app.services.settings import SecuritySettings
from src.app.services.single_use_token_store import SingleUseTokenStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, TokenPurpose, UserStatus
from .dtos import MessageResponse
from .request_magic_link_use_case import build_link

logger = logging.getLogger(__name__)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - Signed single-use token, only its SHA-256 hash is stored
    - Token expires after PASSWORD_RESET_TTL_SECONDS
    - No email enumeration (same response for valid/invalid emails)
    - Strict rate limit per client address
    - Link format: {PASSWORD_RESET_BASE_URL}?token=<signed token>
    - Audit event created for security tracking
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settings: SecuritySettings,
        rate_limiter: IRateLimiter,
        notifier: INotifier,
    ):
        self.uow = uow
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.notifier = notifier
        self.tokens = SingleUseTokenStore(uow, settings)

    async def execute(
        self, email: str, ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> Result[MessageResponse]:
        """
        Execute request password reset use case.

        Note:
            For security (no email enumeration), always returns success
            even if email doesn't exist. However, only generates token
            if email exists.
        """
        rate_error = await check_rate_limit(
            self.rate_limiter, self.settings, f"reset:{ip or 'unknown'}", strict=True
        )
        if rate_error:
            return Return.err(rate_error)

        response = MessageResponse(
            status="sent",
            message="If the email exists, a password reset link has been sent",
        )

        async with self.uow:
            user = await self.uow.users.get_by_email(email or "")
            if user is None or user.status != UserStatus.active:
                return Return.ok(response)

            issued = await self.tokens.issue(
                TokenPurpose.password_reset,
                user.user_type,
                user.id,
                user.email,
                org_id=user.org_id,
                ip=ip,
                user_agent=user_agent,
            )

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="password_reset_requested",
                    event_metadata={"ip": ip, "jti": issued.jti},
                )
            )
            await self.uow.commit()
            recipient = user.email

        await self.notifier.send_password_reset(
            recipient, build_link(self.settings.password_reset_base_url, "token", issued.token)
        )
        return Return.ok(response)
