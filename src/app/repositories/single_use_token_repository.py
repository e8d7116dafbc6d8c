from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import SingleUseToken, TokenPurpose


class ISingleUseTokenRepository(ABC):
    """SingleUseToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: SingleUseToken) -> SingleUseToken:
        """Persist a newly issued token record"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[SingleUseToken]:
        """Get token record by SHA-256 hash of the token"""
        pass

    @abstractmethod
    async def mark_used(self, token_hash: str, now: datetime) -> bool:
        """Set used_at if still unset. Returns False if another caller won."""
        pass

    @abstractmethod
    async def mark_all_used_by_user(
        self, user_id: UUID, now: datetime, purpose: Optional[TokenPurpose] = None
    ) -> int:
        """Mark every unused token of a user as used. Returns count."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete records past their expiry. Returns count deleted."""
        pass
