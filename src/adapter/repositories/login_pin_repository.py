from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import delete, select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.login_pin_repository import ILoginPinRepository
from src.domain.entities import LoginPin, UserType


class LoginPinRepository(ILoginPinRepository):
    """LoginPin repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, pin: LoginPin) -> LoginPin:
        self.session.add(pin)
        await self.session.flush()
        await self.session.refresh(pin)
        return pin

    async def get_latest(self, user_id: UUID, user_type: UserType) -> Optional[LoginPin]:
        stmt = (
            select(LoginPin)
            .where(
                LoginPin.user_id == user_id,
                LoginPin.user_type == user_type,
            )
            .order_by(LoginPin.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def consume_attempt(self, pin_id: UUID) -> Optional[int]:
        """
        Take one attempt before any comparison happens.

        The decrement is a conditional UPDATE so two concurrent guesses can
        never both see the last attempt.
        """
        stmt = (
            update(LoginPin)
            .where(
                LoginPin.id == pin_id,
                LoginPin.used_at.is_(None),
                LoginPin.attempts_remaining > 0,
            )
            .values(attempts_remaining=LoginPin.attempts_remaining - 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        if result.rowcount == 0:
            return None

        remaining = await self.session.execute(
            select(LoginPin.attempts_remaining).where(LoginPin.id == pin_id)
        )
        return remaining.scalar_one()

    async def mark_used(self, pin_id: UUID, now: datetime) -> bool:
        stmt = (
            update(LoginPin)
            .where(LoginPin.id == pin_id, LoginPin.used_at.is_(None))
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def supersede_pending(self, user_id: UUID, user_type: UserType, now: datetime) -> int:
        stmt = (
            update(LoginPin)
            .where(
                LoginPin.user_id == user_id,
                LoginPin.user_type == user_type,
                LoginPin.used_at.is_(None),
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(LoginPin).where(LoginPin.expires_at <= now)
        result = await self.session.execute(stmt)
        return result.rowcount
