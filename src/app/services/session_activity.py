from abc import ABC, abstractmethod
from datetime import datetime


class ISessionActivityRecorder(ABC):
    """Records best-effort session activity outside the request transaction"""

    @abstractmethod
    async def touch(self, token_hash: str, at: datetime) -> None:
        pass
