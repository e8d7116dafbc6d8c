"""
Revoke Sessions Use Case

Handles session listing and revocation for security and session management.
"""

from typing import Optional
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, RevokeReason

ADMIN_ROLE = "admin"


class RevokeSessionsUseCase:
    """
    Use case for revoking user sessions.

    Business Rules:
    - Users can revoke their own sessions
    - Admins can revoke any user's sessions
    - Revocation is audit-logged for security compliance
    - Three revocation modes: all, specific, all-except-current
    - Revoked sessions older than the retention window can be purged
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.sessions = SessionStore(uow, settings)

    async def list_sessions(
        self, user_id: UUID, current_session_id: Optional[UUID] = None
    ) -> Result[list]:
        """Active sessions of a user, flagging the caller's own"""
        async with self.uow:
            sessions = await self.sessions.list_active(user_id)
            return Return.ok(
                [
                    {
                        "session_id": str(s.id),
                        "ip": s.ip,
                        "user_agent": s.user_agent,
                        "created_at": s.created_at.isoformat(),
                        "last_accessed_at": s.last_accessed_at.isoformat() if s.last_accessed_at else None,
                        "expires_at": s.expires_at.isoformat(),
                        "current": s.id == current_session_id,
                    }
                    for s in sessions
                ]
            )

    async def revoke_all_sessions(
        self,
        target_user_id: UUID,
        requesting_user_id: Optional[UUID],
        requesting_role: str,
    ) -> Result[dict]:
        """
        Revoke all sessions for a user.

        Args:
            target_user_id: User whose sessions will be revoked
            requesting_user_id: User requesting the revocation (None for API-key admin)
            requesting_role: Role of requesting user

        Returns:
            Result with count of revoked sessions, or Error
        """
        async with self.uow:
            is_self = target_user_id == requesting_user_id
            is_admin = requesting_role == ADMIN_ROLE

            if not is_self and not is_admin:
                return Return.err(Error("FORBIDDEN", "Only admins can revoke other users' sessions"))

            target_user = await self.uow.users.get_by_id(target_user_id)
            if not target_user:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            reason = RevokeReason.logout if is_self else RevokeReason.admin_action
            count = await self.sessions.revoke_all(target_user_id, reason.value)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=requesting_user_id,
                    action="revoke_all_sessions",
                    event_metadata={
                        "target_user_id": str(target_user_id),
                        "revoked_count": count,
                        "is_self": is_self,
                    },
                )
            )
            await self.uow.commit()

            return Return.ok({"revoked_count": count, "target_user_id": str(target_user_id)})

    async def revoke_specific_session(
        self,
        session_id: UUID,
        requesting_user_id: UUID,
        requesting_role: str,
    ) -> Result[dict]:
        """Revoke a specific session by ID."""
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if not session:
                return Return.err(Error("SESSION_NOT_FOUND", "Session not found"))

            is_self = session.user_id == requesting_user_id
            if not is_self and requesting_role != ADMIN_ROLE:
                # Same answer as a missing session
                return Return.err(Error("SESSION_NOT_FOUND", "Session not found"))

            if session.revoked_at is not None:
                return Return.err(Error("SESSION_ALREADY_REVOKED", "Session already revoked"))

            reason = RevokeReason.logout if is_self else RevokeReason.admin_action
            success = await self.sessions.revoke_by_id(session_id, reason.value)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=requesting_user_id,
                    action="revoke_session",
                    event_metadata={
                        "session_id": str(session_id),
                        "target_user_id": str(session.user_id),
                        "is_self": is_self,
                    },
                )
            )
            await self.uow.commit()

            return Return.ok({"session_id": str(session_id), "revoked": success})

    async def revoke_all_except_current(
        self, current_session_id: UUID, requesting_user_id: UUID
    ) -> Result[dict]:
        """
        Revoke all sessions for the user except the current session.

        This is a self-service operation (logout other devices).
        """
        async with self.uow:
            current_session = await self.uow.sessions.get_by_id(current_session_id)
            if not current_session:
                return Return.err(Error("SESSION_NOT_FOUND", "Current session not found"))

            if current_session.user_id != requesting_user_id:
                return Return.err(Error("FORBIDDEN", "Session does not belong to current user"))

            count = await self.sessions.revoke_all_except(
                requesting_user_id, current_session_id, RevokeReason.logout.value
            )

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=requesting_user_id,
                    action="revoke_other_sessions",
                    event_metadata={
                        "kept_session_id": str(current_session_id),
                        "revoked_count": count,
                    },
                )
            )
            await self.uow.commit()

            return Return.ok({"revoked_count": count, "kept_session_id": str(current_session_id)})

    async def cleanup(self, retention_days: Optional[int] = None) -> Result[dict]:
        """Purge sessions revoked longer ago than the retention window"""
        async with self.uow:
            deleted = await self.sessions.cleanup(retention_days)
            await self.uow.commit()
            return Return.ok({"deleted_count": deleted})
