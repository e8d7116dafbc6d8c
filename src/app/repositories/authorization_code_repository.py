from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.domain.entities import AuthorizationCode


class IAuthorizationCodeRepository(ABC):
    """AuthorizationCode repository interface - application layer"""

    @abstractmethod
    async def create(self, code: AuthorizationCode) -> AuthorizationCode:
        """Persist a newly issued code"""
        pass

    @abstractmethod
    async def get_by_code_hash(self, code_hash: str) -> Optional[AuthorizationCode]:
        """Get code record by SHA-256 hash of the code"""
        pass

    @abstractmethod
    async def mark_used(self, code_hash: str, now: datetime) -> bool:
        """Set used_at if still unset. Returns False if another caller won."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete codes past their expiry. Returns count deleted."""
        pass
