"""
Step-Up PIN Verifier

Six-digit codes with a short lifetime and a bounded number of attempts.
An attempt is taken before any other check so every call on a pending
PIN counts against the caller, including one that finds it expired.
An exhausted PIN stays pending with no attempts left until it expires.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import LoginPin, UserType

logger = logging.getLogger(__name__)

PIN_PURPOSE = "login_pin"


def generate_pin() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class LoginPinVerifier:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings

    def _hash(self, user_id: UUID, pin: str) -> str:
        key = self.settings.signing_key(PIN_PURPOSE)
        return hmac.new(key, f"{user_id}:{pin}".encode("utf-8"), hashlib.sha256).hexdigest()

    async def issue(self, user_id: UUID, email: str, user_type: UserType) -> str:
        """Create a new PIN, superseding any that is still pending"""
        now = utcnow()
        await self.uow.login_pins.supersede_pending(user_id, user_type, now)

        pin = generate_pin()
        await self.uow.login_pins.create(
            LoginPin(
                user_id=user_id,
                user_type=user_type,
                email=email,
                pin_hash=self._hash(user_id, pin),
                attempts_remaining=self.settings.pin_max_attempts,
                created_at=now,
                expires_at=now + timedelta(seconds=self.settings.pin_ttl_seconds),
            )
        )

        logger.info(f"event=pin_issued user_id={user_id}")
        return pin

    async def pending(self, user_id: UUID, user_type: UserType) -> Optional[LoginPin]:
        """Latest PIN if it is still awaiting verification, exhausted or not"""
        pin = await self.uow.login_pins.get_latest(user_id, user_type)
        if pin is None or pin.used_at is not None or pin.expires_at <= utcnow():
            return None
        return pin

    async def verify(self, user_id: UUID, user_type: UserType, supplied_pin: str) -> Result[LoginPin]:
        pin = await self.uow.login_pins.get_latest(user_id, user_type)
        if not pin or pin.used_at is not None:
            return Return.err(Error("PIN_NOT_FOUND", "No pending PIN"))

        remaining = await self.uow.login_pins.consume_attempt(pin.id)
        if remaining is None:
            return Return.err(Error("TOO_MANY_ATTEMPTS", "Too many incorrect attempts"))

        now = utcnow()
        if pin.expires_at <= now:
            await self.uow.login_pins.mark_used(pin.id, now)
            logger.info(f"event=pin_expired user_id={user_id}")
            return Return.err(Error("PIN_EXPIRED", "PIN has expired"))

        supplied_hash = self._hash(user_id, (supplied_pin or "").strip())
        if hmac.compare_digest(supplied_hash, pin.pin_hash):
            if not await self.uow.login_pins.mark_used(pin.id, now):
                return Return.err(Error("PIN_NOT_FOUND", "No pending PIN"))
            logger.info(f"event=pin_verified user_id={user_id}")
            return Return.ok(pin)

        if remaining <= 0:
            logger.warning(f"event=pin_exhausted user_id={user_id}")
            return Return.err(Error("TOO_MANY_ATTEMPTS", "Too many incorrect attempts"))

        logger.warning(f"event=pin_incorrect user_id={user_id} attempts_remaining={remaining}")
        return Return.err(
            Error(
                "INVALID_PIN",
                "Incorrect PIN",
                details={"attempts_remaining": remaining},
            )
        )
