"""
In-memory sliding window rate limiter.

Counters live in process memory: they reset on restart and each worker
process counts on its own.
"""

import asyncio
import logging
import time
from collections import defaultdict
from typing import Dict, List

from src.app.services.rate_limiter import IRateLimiter, RateLimitDecision

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(IRateLimiter):
    # Maximum number of keys to track before LRU eviction kicks in
    MAX_KEYS = 10000

    def __init__(self, cleanup_interval: int = 60):
        self._hits: Dict[str, List[float]] = defaultdict(list)
        self._windows: Dict[str, int] = {}
        self._last_access: Dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        now = time.time()
        window_start = now - window_seconds

        async with self._lock:
            if now - self._last_cleanup > self._cleanup_interval:
                self._cleanup(now)
                self._last_cleanup = now

            if len(self._hits) >= self.MAX_KEYS and key not in self._hits:
                self._evict_lru()

            self._last_access[key] = now
            self._windows[key] = window_seconds

            hits = self._hits[key]
            hits[:] = [t for t in hits if t > window_start]

            if len(hits) >= limit:
                retry_after = int(min(hits) + window_seconds - now) + 1 if hits else window_seconds
                return RateLimitDecision(allowed=False, remaining=0, retry_after=max(1, retry_after))

            hits.append(now)
            return RateLimitDecision(allowed=True, remaining=limit - len(hits))

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._hits.pop(key, None)
            self._windows.pop(key, None)
            self._last_access.pop(key, None)

    def _evict_lru(self) -> None:
        """Evict 10% of keys (at least 100), least recently used first"""
        count = max(100, len(self._hits) // 10)
        oldest = sorted(self._last_access.items(), key=lambda item: item[1])[:count]
        for key, _ in oldest:
            self._hits.pop(key, None)
            self._windows.pop(key, None)
            self._last_access.pop(key, None)
        logger.debug(f"Rate limiter LRU eviction: removed {len(oldest)} keys")

    def _cleanup(self, now: float) -> None:
        for key in list(self._hits):
            cutoff = now - self._windows.get(key, 0)
            self._hits[key] = [t for t in self._hits[key] if t > cutoff]
            if not self._hits[key]:
                del self._hits[key]
                self._windows.pop(key, None)
                self._last_access.pop(key, None)
