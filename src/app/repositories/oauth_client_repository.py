from abc import ABC, abstractmethod
from typing import List, Optional

from src.domain.entities import OAuthClient


class IOAuthClientRepository(ABC):
    """OAuthClient repository interface - application layer"""

    @abstractmethod
    async def get_by_client_id(self, client_id: str) -> Optional[OAuthClient]:
        """Get client by client_id"""
        pass

    @abstractmethod
    async def list_all(self) -> List[OAuthClient]:
        """List every registered client, newest first"""
        pass

    @abstractmethod
    async def create(self, client: OAuthClient) -> OAuthClient:
        """Register a new client"""
        pass

    @abstractmethod
    async def update(self, client: OAuthClient) -> OAuthClient:
        """Update existing client"""
        pass

    @abstractmethod
    async def delete(self, client_id: str) -> bool:
        """Hard-delete a client. Returns True if it existed."""
        pass
