from typing import List, Optional

from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.oauth_client_repository import IOAuthClientRepository
from src.domain.entities import OAuthClient


class OAuthClientRepository(IOAuthClientRepository):
    """OAuthClient repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_client_id(self, client_id: str) -> Optional[OAuthClient]:
        stmt = select(OAuthClient).where(OAuthClient.client_id == client_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> List[OAuthClient]:
        stmt = select(OAuthClient).order_by(OAuthClient.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, client: OAuthClient) -> OAuthClient:
        self.session.add(client)
        await self.session.flush()
        await self.session.refresh(client)
        return client

    async def update(self, client: OAuthClient) -> OAuthClient:
        self.session.add(client)
        await self.session.flush()
        await self.session.refresh(client)
        return client

    async def delete(self, client_id: str) -> bool:
        stmt = delete(OAuthClient).where(OAuthClient.client_id == client_id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
