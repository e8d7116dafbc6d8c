"""
Session Store

Server-side sessions keyed by SHA-256 of a 256-bit bearer secret.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.background import fire_and_forget
from src.app.services.session_activity import ISessionActivityRecorder
from src.app.services.settings import SecuritySettings
from src.app.services.token_signer import sha256_hex
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedSession:
    token: str
    session_id: UUID
    expires_at: datetime


def generate_session_token() -> str:
    return secrets.token_hex(32)


class SessionStore:
    def __init__(
        self,
        uow: UnitOfWork,
        settings: SecuritySettings,
        activity_recorder: Optional[ISessionActivityRecorder] = None,
    ):
        self.uow = uow
        self.settings = settings
        self.activity_recorder = activity_recorder

    async def create(
        self,
        user_id: UUID,
        email: str,
        role: str,
        ttl_seconds: Optional[int] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CreatedSession:
        token = generate_session_token()
        now = utcnow()
        expires_at = now + timedelta(seconds=ttl_seconds or self.settings.session_ttl_seconds)

        session = await self.uow.sessions.create(
            Session(
                token_hash=sha256_hex(token),
                user_id=user_id,
                email=email,
                role=role,
                ip=ip,
                user_agent=user_agent[:512] if user_agent else None,
                created_at=now,
                expires_at=expires_at,
                last_accessed_at=now,
            )
        )

        logger.info(f"event=session_created session_id={session.id} user_id={user_id}")
        return CreatedSession(token=token, session_id=session.id, expires_at=expires_at)

    async def validate(self, token: str) -> Result[Session]:
        """
        Look up a session by bearer token.

        Error codes are for logs only; callers report every failure as
        "Invalid or expired session".
        """
        if not token:
            return Return.err(Error("SESSION_NOT_FOUND", "Invalid or expired session"))

        token_hash = sha256_hex(token)
        session = await self.uow.sessions.get_by_token_hash(token_hash)
        if not session:
            logger.info("event=session_invalid reason=session_not_found")
            return Return.err(Error("SESSION_NOT_FOUND", "Invalid or expired session"))

        if session.revoked_at is not None:
            logger.info(f"event=session_invalid reason=session_revoked session_id={session.id}")
            return Return.err(Error("SESSION_REVOKED", "Invalid or expired session"))

        now = utcnow()
        if session.expires_at <= now:
            logger.info(f"event=session_invalid reason=session_expired session_id={session.id}")
            return Return.err(Error("SESSION_EXPIRED", "Invalid or expired session"))

        if self.activity_recorder is not None:
            fire_and_forget(
                self.activity_recorder.touch(token_hash, now), name="session-touch"
            )

        return Return.ok(session)

    async def revoke(self, token: str, reason: str) -> bool:
        """Idempotent: False when the session is absent or already revoked"""
        if not token:
            return False
        session = await self.uow.sessions.revoke_by_token_hash(
            sha256_hex(token), reason, utcnow()
        )
        if session is None:
            return False
        logger.info(f"event=session_revoked session_id={session.id} reason={reason}")
        return True

    async def revoke_by_id(self, session_id: UUID, reason: str) -> bool:
        revoked = await self.uow.sessions.revoke_by_id(session_id, reason, utcnow())
        if revoked:
            logger.info(f"event=session_revoked session_id={session_id} reason={reason}")
        return revoked

    async def revoke_all(self, user_id: UUID, reason: str) -> int:
        count = await self.uow.sessions.revoke_all_by_user_id(user_id, reason, utcnow())
        logger.info(f"event=sessions_revoked user_id={user_id} reason={reason} count={count}")
        return count

    async def list_active(self, user_id: UUID) -> List[Session]:
        return await self.uow.sessions.get_active_by_user_id(user_id, utcnow())

    async def cleanup(self, retention_days: Optional[int] = None) -> int:
        """Delete sessions revoked more than retention_days ago"""
        days = self.settings.session_retention_days if retention_days is None else retention_days
        cutoff = utcnow() - timedelta(days=days)
        count = await self.uow.sessions.delete_revoked_before(cutoff)
        logger.info(f"event=sessions_cleaned count={count} retention_days={days}")
        return count

    async def revoke_all_except(self, user_id: UUID, keep_session_id: UUID, reason: str) -> int:
        count = await self.uow.sessions.revoke_all_except(
            user_id, keep_session_id, reason, utcnow()
        )
        logger.info(f"event=sessions_revoked user_id={user_id} reason={reason} count={count} kept={keep_session_id}")
        return count
