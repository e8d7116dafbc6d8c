"""
Validate Session Use Case

Resolves a session cookie to the signed-in user.
"""

from typing import Optional

from libs.result import Result, Return
from src.app.services.session_activity import ISessionActivityRecorder
from src.app.services.session_store import SessionStore
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from .dtos import SessionInfo


class ValidateSessionUseCase:
    """
    Business Rules:
    - Revoked and expired sessions never validate
    - last_accessed_at is bumped in the background, never awaited
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settings: SecuritySettings,
        activity_recorder: Optional[ISessionActivityRecorder] = None,
    ):
        self.uow = uow
        self.sessions = SessionStore(uow, settings, activity_recorder)

    async def execute(self, token: str) -> Result[SessionInfo]:
        async with self.uow:
            result = await self.sessions.validate(token)
            if result.is_err():
                return result

            session = result.value
            return Return.ok(
                SessionInfo(
                    session_id=str(session.id),
                    user_id=str(session.user_id),
                    email=session.email,
                    role=session.role,
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
