from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import delete, select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.single_use_token_repository import ISingleUseTokenRepository
from src.domain.entities import SingleUseToken, TokenPurpose


class SingleUseTokenRepository(ISingleUseTokenRepository):
    """SingleUseToken repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: SingleUseToken) -> SingleUseToken:
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def get_by_token_hash(self, token_hash: str) -> Optional[SingleUseToken]:
        stmt = select(SingleUseToken).where(SingleUseToken.token_hash == token_hash)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_used(self, token_hash: str, now: datetime) -> bool:
        """Conditional update: only the caller that flips used_at wins"""
        stmt = (
            update(SingleUseToken)
            .where(
                SingleUseToken.token_hash == token_hash,
                SingleUseToken.used_at.is_(None),
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def mark_all_used_by_user(
        self, user_id: UUID, now: datetime, purpose: Optional[TokenPurpose] = None
    ) -> int:
        stmt = update(SingleUseToken).where(
            SingleUseToken.user_id == user_id,
            SingleUseToken.used_at.is_(None),
        )
        if purpose is not None:
            stmt = stmt.where(SingleUseToken.purpose == purpose)
        stmt = stmt.values(used_at=now).execution_options(synchronize_session=False)

        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(SingleUseToken).where(SingleUseToken.expires_at <= now)
        result = await self.session.execute(stmt)
        return result.rowcount
