# ratelimit.py — Per-client request throttling for the HTTP layer
# The store is built once at startup and hung on app.state; there is no
# module-level singleton. Keys idle for a whole window are evicted.

import os
import time
from collections import deque
from typing import Callable, Deque, Dict

RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "300"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_MAX_KEYS = int(os.getenv("RATE_LIMIT_MAX_KEYS", "10000"))


class RateLimitStore:
    """Sliding-window counter keyed by client (IP address)"""

    def __init__(
        self,
        limit: int = RATE_LIMIT_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        max_keys: int = RATE_LIMIT_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def hit(self, key: str) -> bool:
        """Count one request for `key`; False when over the limit"""
        if not self.enabled:
            return True
        now = self._clock()
        if key not in self._hits and len(self._hits) >= self.max_keys:
            self.evict_expired(now)
        hits = self._hits.setdefault(key, deque())
        self._trim(hits, now)
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True

    def retry_after(self, key: str) -> int:
        hits = self._hits.get(key)
        if not hits:
            return 0
        return max(1, int(hits[0] + self.window - self._clock()) + 1)

    def evict_expired(self, now: float = None) -> int:
        now = self._clock() if now is None else now
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for k in stale:
            del self._hits[k]
        # Still full: drop the keys that went quiet first
        if len(self._hits) >= self.max_keys:
            oldest = sorted(self._hits, key=lambda k: self._hits[k][-1])
            for k in oldest[: len(self._hits) - self.max_keys + 1]:
                del self._hits[k]
                stale.append(k)
        return len(stale)

    def clear(self) -> None:
        self._hits.clear()

    def __len__(self) -> int:
        return len(self._hits)

    def _trim(self, hits: Deque[float], now: float) -> None:
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
