import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from src.adapter.repositories.session_repository import SessionRepository
from src.app.services.session_activity import ISessionActivityRecorder

logger = logging.getLogger(__name__)


class SqlSessionActivityRecorder(ISessionActivityRecorder):
    """Writes last_accessed_at in its own short transaction"""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def touch(self, token_hash: str, at: datetime) -> None:
        try:
            async with self.session_factory() as session:
                await SessionRepository(session).touch(token_hash, at)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning(f"event=session_touch_failed error={e}")
