"""
Expiry sweeper

Deletes rows whose lifetime is over: sessions, authorization codes, login
PINs, single-use tokens and refresh tokens.
"""

import asyncio
import logging
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.base import utcnow

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, session_factory, interval_seconds: int = 300):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds

    async def sweep_once(self) -> Dict[str, int]:
        now = utcnow()
        async with self.session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            async with uow:
                counts = {
                    "sessions": await uow.sessions.delete_expired(now),
                    "authorization_codes": await uow.authorization_codes.delete_expired(now),
                    "login_pins": await uow.login_pins.delete_expired(now),
                    "single_use_tokens": await uow.single_use_tokens.delete_expired(now),
                    "refresh_tokens": await uow.refresh_tokens.delete_expired(now),
                }
                await uow.commit()

        if any(counts.values()):
            logger.info(f"event=expiry_sweep {counts}")
        return counts

    async def run(self) -> None:
        """Sweep forever; cancel the task to stop"""
        while True:
            try:
                await self.sweep_once()
            except SQLAlchemyError as e:
                logger.error(f"event=expiry_sweep_failed error={e}")
            await asyncio.sleep(self.interval_seconds)
