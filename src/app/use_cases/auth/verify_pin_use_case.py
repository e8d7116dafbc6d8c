"""
Verify PIN Use Case

Completes a login that the step-up policy interrupted.
"""

import logging
from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.login_pin_verifier import LoginPinVerifier
from src.app.services.rate_limiter import IRateLimiter, check_rate_limit
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, UserStatus
from .dtos import LoginResponse, SessionGrant
from .login_use_case import user_info

logger = logging.getLogger(__name__)


class VerifyPinUseCase:
    """
    Use case for step-up PIN verification.

    Business Rules:
    - Each call consumes one attempt before the PIN is compared, and the
      decrement is committed even when verification fails
    - A PIN is terminal once verified, exhausted or expired
    - On success the step-up is cleared and a session is created exactly as
      for a password login
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings, rate_limiter: IRateLimiter):
        self.uow = uow
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.pins = LoginPinVerifier(uow, settings)
        self.sessions = SessionStore(uow, settings)

    async def execute(
        self,
        email: str,
        pin: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Result[LoginResponse]:
        rate_error = await check_rate_limit(
            self.rate_limiter, self.settings, f"login:{ip or 'unknown'}"
        )
        if rate_error:
            return Return.err(rate_error)

        async with self.uow:
            user = await self.uow.users.get_by_email(email or "")
            if user is None or user.status != UserStatus.active:
                return Return.err(Error("PIN_NOT_FOUND", "No pending PIN"))

            verification = await self.pins.verify(user.id, user.user_type, pin)
            if verification.is_err():
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="login_pin_failed",
                        event_metadata={"ip": ip, "reason": verification.error.code},
                    )
                )
                await self.uow.commit()
                return verification

            user.last_login_at = utcnow()
            user.step_up_pending = False
            user = await self.uow.users.update(user)
            created = await self.sessions.create(
                user.id, user.email, user.role, ip=ip, user_agent=user_agent
            )
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="login",
                    event_metadata={"ip": ip, "method": "password+pin", "session_id": str(created.session_id)},
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
