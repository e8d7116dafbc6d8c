"""
Logout Use Case

Revokes the current session, or every session of the user.
"""

from libs.result import Result, Return
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, RevokeReason
from .dtos import LogoutResponse


class LogoutUseCase:
    """
    Business Rules:
    - Idempotent: an unknown or already revoked session still logs out
    - everywhere=True revokes all sessions of the session's user
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.sessions = SessionStore(uow, settings)

    async def execute(self, token: str, everywhere: bool = False) -> Result[LogoutResponse]:
        async with self.uow:
            validation = await self.sessions.validate(token)
            if validation.is_err():
                return Return.ok(LogoutResponse(revoked_count=0))

            session = validation.value
            if everywhere:
                count = await self.sessions.revoke_all(session.user_id, RevokeReason.logout.value)
            else:
                count = int(await self.sessions.revoke(token, RevokeReason.logout.value))

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=session.user_id,
                    action="logout",
                    event_metadata={
                        "session_id": str(session.id),
                        "everywhere": everywhere,
                        "revoked_count": count,
                    },
                )
            )
            await self.uow.commit()

            return Return.ok(LogoutResponse(revoked_count=count))
