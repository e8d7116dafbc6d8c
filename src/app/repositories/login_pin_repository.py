from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import LoginPin, UserType


class ILoginPinRepository(ABC):
    """LoginPin repository interface - application layer"""

    @abstractmethod
    async def create(self, pin: LoginPin) -> LoginPin:
        """Persist a new PIN challenge"""
        pass

    @abstractmethod
    async def get_latest(self, user_id: UUID, user_type: UserType) -> Optional[LoginPin]:
        """Most recently issued PIN for the user, terminal or not"""
        pass

    @abstractmethod
    async def consume_attempt(self, pin_id: UUID) -> Optional[int]:
        """
        Decrement attempts_remaining if the PIN is pending and has attempts left.

        Returns the remaining attempts after the decrement, or None when no
        attempt could be taken.
        """
        pass

    @abstractmethod
    async def mark_used(self, pin_id: UUID, now: datetime) -> bool:
        """Make the PIN terminal. Returns False if it already was."""
        pass

    @abstractmethod
    async def supersede_pending(self, user_id: UUID, user_type: UserType, now: datetime) -> int:
        """Make every pending PIN of the user terminal. Returns count."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete PINs past their expiry. Returns count deleted."""
        pass
