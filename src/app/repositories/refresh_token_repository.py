from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import RefreshToken


class IRefreshTokenRepository(ABC):
    """RefreshToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: RefreshToken) -> RefreshToken:
        """Persist a newly issued refresh token"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Get refresh token by SHA-256 hash"""
        pass

    @abstractmethod
    async def revoke(self, token_hash: str, reason: str, now: datetime) -> bool:
        """Revoke if still active. Returns False if it was already revoked."""
        pass

    @abstractmethod
    async def revoke_chain(self, chain_id: UUID, reason: str, now: datetime) -> int:
        """Revoke every active token in a rotation chain. Returns count."""
        pass

    @abstractmethod
    async def revoke_all_by_user_id(
        self, user_id: UUID, reason: str, now: datetime, client_id: Optional[str] = None
    ) -> int:
        """Revoke all active refresh tokens of a user. Returns count."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete tokens past their expiry. Returns count deleted."""
        pass
