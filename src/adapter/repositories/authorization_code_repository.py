from datetime import datetime
from typing import Optional

from sqlmodel import delete, select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.authorization_code_repository import IAuthorizationCodeRepository
from src.domain.entities import AuthorizationCode


class AuthorizationCodeRepository(IAuthorizationCodeRepository):
    """AuthorizationCode repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, code: AuthorizationCode) -> AuthorizationCode:
        self.session.add(code)
        await self.session.flush()
        await self.session.refresh(code)
        return code

    async def get_by_code_hash(self, code_hash: str) -> Optional[AuthorizationCode]:
        stmt = select(AuthorizationCode).where(AuthorizationCode.code_hash == code_hash)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_used(self, code_hash: str, now: datetime) -> bool:
        """Conditional update: at most one exchange can succeed"""
        stmt = (
            update(AuthorizationCode)
            .where(
                AuthorizationCode.code_hash == code_hash,
                AuthorizationCode.used_at.is_(None),
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(AuthorizationCode).where(AuthorizationCode.expires_at <= now)
        result = await self.session.execute(stmt)
        return result.rowcount
