"""
Request Magic Link Use Case

Issues a passwordless login link.
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

logger = logging.getLogger(__name__)

SENT_MESSAGE = "If the email exists, a login link has been sent"


def build_link(base_url: str, param: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{param}={token}"


class RequestMagicLinkUseCase:
    """
    Use case for requesting a magic login link.

    Business Rules:
    - Strict rate limit per client address
    - No email enumeration (same response for valid/invalid emails)
    - Link format: {MAGIC_LINK_BASE_URL}?t=<signed token>
    - Token is single use and expires after MAGIC_LINK_TTL_SECONDS
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
        rate_error = await check_rate_limit(
            self.rate_limiter, self.settings, f"magic:{ip or 'unknown'}", strict=True
        )
        if rate_error:
            return Return.err(rate_error)

        response = MessageResponse(status="sent", message=SENT_MESSAGE)

        async with self.uow:
            user = await self.uow.users.get_by_email(email or "")
            if user is None or user.status != UserStatus.active:
                logger.info("event=magic_link_skipped reason=no_active_user")
                return Return.ok(response)

            issued = await self.tokens.issue(
                TokenPurpose.magic_link,
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
                    action="magic_link_requested",
                    event_metadata={"ip": ip, "jti": issued.jti},
                )
            )
            await self.uow.commit()
            recipient = user.email

        await self.notifier.send_magic_link(
            recipient, build_link(self.settings.magic_link_base_url, "t", issued.token)
        )
        return Return.ok(response)
