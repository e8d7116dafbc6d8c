import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from libs.result import Error
from src.app.services.settings import SecuritySettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class IRateLimiter(ABC):
    """Counts hits per key within a sliding window"""

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        pass

    @abstractmethod
    async def reset(self, key: str) -> None:
        pass


async def check_rate_limit(
    limiter: IRateLimiter, settings: SecuritySettings, key: str, strict: bool = False
) -> Optional[Error]:
    """
    Count one hit against key. Returns a RATE_LIMITED error once the
    window is full, None otherwise.

    "strict" is the tighter bucket used for link and code requests.
    """
    if settings.rate_limit_dev_bypass and not settings.is_production:
        return None

    if strict:
        limit, window = settings.rate_limit_strict_max, settings.rate_limit_strict_window_seconds
    else:
        limit, window = settings.rate_limit_login_max, settings.rate_limit_login_window_seconds

    decision = await limiter.hit(key, limit, window)
    if decision.allowed:
        return None

    logger.warning(f"event=rate_limit_exceeded key={key} retry_after={decision.retry_after}")
    return Error(
        "RATE_LIMITED",
        "Too many requests, please try again later",
        details={"retry_after": decision.retry_after},
    )
