"""
Login Use Case

Password login with optional step-up PIN.
"""

import asyncio
import logging
from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.login_pin_verifier import LoginPinVerifier
from src.app.services.notifier import INotifier
from src.app.services.passwords import check_secret, dummy_check
from src.app.services.rate_limiter import IRateLimiter, check_rate_limit
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.step_up_policy import StepUpPolicy, build_step_up_policy
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, UserStatus
from .dtos import LoginResponse, SessionGrant, UserInfo

logger = logging.getLogger(__name__)


def user_info(user) -> UserInfo:
    return UserInfo(id=str(user.id), email=user.email, name=user.name, role=user.role)


class LoginUseCase:
    """
    Use case for password login.

    Business Rules:
    - Rate limit is checked before anything touches the database
    - Unknown email and wrong password are indistinguishable: same message,
      same bcrypt work, same fixed delay
    - User must have status=active
    - login_count is incremented on every successful password check
    - When the step-up policy fires, a PIN is issued and no session is created
    - Until that PIN is verified every later password login stays in step-up;
      a still-pending PIN is kept, otherwise a fresh one is sent
    - Otherwise a session is created and returned for the cookie
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settings: SecuritySettings,
        rate_limiter: IRateLimiter,
        notifier: INotifier,
        step_up_policy: Optional[StepUpPolicy] = None,
    ):
        self.uow = uow
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.notifier = notifier
        self.step_up_policy = step_up_policy or build_step_up_policy(settings)
        self.sessions = SessionStore(uow, settings)
        self.pins = LoginPinVerifier(uow, settings)

    async def execute(
        self,
        email: str,
        password: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Result[LoginResponse]:
        """
        Execute login use case.

        Args:
            email: User email
            password: Plain text password
            ip: Client address, used as the rate-limit key
            user_agent: Stored on the session

        Returns:
            Result with LoginResponse (authenticated or pin_required), or Error
        """
        rate_error = await check_rate_limit(
            self.rate_limiter, self.settings, f"login:{ip or 'unknown'}"
        )
        if rate_error:
            return Return.err(rate_error)

        result, pin_to_send = await self._authenticate(email, password, ip, user_agent)

        if result.is_err() and result.error.code == "INVALID_CREDENTIALS":
            await asyncio.sleep(self.settings.failed_login_delay_ms / 1000)
            return result

        if pin_to_send:
            await self.notifier.send_login_pin(result.value.user.email, pin_to_send)

        return result

    async def _authenticate(self, email, password, ip, user_agent):
        async with self.uow:
            user = await self.uow.users.get_by_email(email or "")

            if user is None:
                dummy_check(password, self.settings.bcrypt_rounds)
                logger.info("event=login_failed reason=unknown_user")
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password")), None

            if not check_secret(password or "", user.password_hash):
                logger.info(f"event=login_failed reason=bad_password user_id={user.id}")
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password")), None

            if user.status != UserStatus.active:
                logger.info(f"event=login_failed reason=disabled user_id={user.id}")
                return Return.err(Error("USER_DISABLED", "User account is disabled")), None

            login_count = await self.uow.users.increment_login_count(user.id)

            if user.step_up_pending or self.step_up_policy.should_trigger_pin(login_count):
                pin = None
                if await self.pins.pending(user.id, user.user_type) is None:
                    pin = await self.pins.issue(user.id, user.email, user.user_type)
                if not user.step_up_pending:
                    user.step_up_pending = True
                    await self.uow.users.update(user)
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="login_pin_required",
                        event_metadata={"ip": ip, "login_count": login_count, "pin_sent": pin is not None},
                    )
                )
                await self.uow.commit()
                return Return.ok(LoginResponse(status="pin_required", user=user_info(user))), pin

            user.last_login_at = utcnow()
            user = await self.uow.users.update(user)
            created = await self.sessions.create(
                user.id, user.email, user.role, ip=ip, user_agent=user_agent
            )
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="login",
                    event_metadata={"ip": ip, "method": "password", "session_id": str(created.session_id)},
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
            ), None
