from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from src.domain.entities import Session


class ISessionRepository(ABC):
    """Session repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[Session]:
        """Get session by ID"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        """Get session by SHA-256 hash of its bearer token"""
        pass

    @abstractmethod
    async def get_active_by_user_id(self, user_id: UUID, now: datetime) -> List[Session]:
        """Get non-revoked, non-expired sessions for a user, newest first"""
        pass

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """Create a new session"""
        pass

    @abstractmethod
    async def revoke_by_token_hash(
        self, token_hash: str, reason: str, now: datetime
    ) -> Optional[Session]:
        """Revoke an active session. Returns the session if this call revoked it."""
        pass

    @abstractmethod
    async def revoke_by_id(self, session_id: UUID, reason: str, now: datetime) -> bool:
        """Revoke a specific session. Returns True if session existed and was revoked."""
        pass

    @abstractmethod
    async def revoke_all_by_user_id(self, user_id: UUID, reason: str, now: datetime) -> int:
        """Revoke all sessions for a user. Returns count of revoked sessions."""
        pass

    @abstractmethod
    async def touch(self, token_hash: str, now: datetime) -> None:
        """Record last access time"""
        pass

    @abstractmethod
    async def delete_revoked_before(self, cutoff: datetime) -> int:
        """Delete sessions revoked before cutoff. Returns count deleted."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete sessions past their expiry. Returns count deleted."""
        pass

    @abstractmethod
    async def revoke_all_except(
        self, user_id: UUID, keep_session_id: UUID, reason: str, now: datetime
    ) -> int:
        """Revoke all sessions for a user except the specified session"""
        pass
