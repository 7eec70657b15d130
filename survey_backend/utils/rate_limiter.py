"""Token bucket rate limiting keyed by client IP or IP + route."""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    """Admit-or-reject decision for a key.

    ``limit`` requests are allowed per ``window_seconds`` on average, with up
    to ``burst`` (defaults to ``limit``) available at once. Returns
    ``(allowed, retry_after_seconds)``; ``retry_after`` is ``None`` when allowed.
    """

    def check(
        self, key: str, limit: int, window_seconds: float, burst: Optional[int] = None
    ) -> tuple[bool, Optional[int]]:
        ...


@dataclass
class TokenBucket:
    """Bucket of up to ``capacity`` tokens refilled at ``refill_rate`` tokens/second."""

    capacity: float
    refill_rate: float
    tokens: float
    last_refill: float
    last_seen: float = field(default=0.0)

    @classmethod
    def full(cls, capacity: int, refill_rate: float, now: float) -> "TokenBucket":
        capacity = max(1, capacity)
        return cls(
            capacity=float(capacity),
            refill_rate=float(refill_rate),
            tokens=float(capacity),
            last_refill=now,
            last_seen=now,
        )

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, now: float) -> bool:
        """Take one token if available."""
        self.refill(now)
        self.last_seen = now
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def seconds_until_token(self) -> float:
        if self.tokens >= 1.0:
            return 0.0
        if self.refill_rate <= 0:
            return math.inf
        return (1.0 - self.tokens) / self.refill_rate


class InMemoryRateLimiter:
    """Per-process token bucket limiter.

    Buckets are created lazily on first use and dropped once they have been
    idle for ``idle_ttl`` seconds. An idle bucket would have refilled to full
    anyway, so eviction never changes a decision.
    """

    def __init__(
        self,
        idle_ttl: float = 600.0,
        cleanup_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_ttl = idle_ttl
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._buckets)

    def _evict_idle(self, now: float) -> None:
        """Remove idle buckets. Caller holds the lock."""
        if now - self._last_cleanup < self._cleanup_interval:
            return

        idle_keys = [
            key for key, bucket in self._buckets.items()
            if now - bucket.last_seen >= self.idle_ttl
        ]
        for key in idle_keys:
            self._buckets.pop(key, None)

        self._last_cleanup = now

        if idle_keys:
            logger.debug(f"Evicted {len(idle_keys)} idle rate limit buckets")

    def check(
        self, key: str, limit: int, window_seconds: float, burst: Optional[int] = None
    ) -> tuple[bool, Optional[int]]:
        now = self._clock()
        capacity = burst if burst is not None else limit
        refill_rate = limit / window_seconds

        with self._lock:
            self._evict_idle(now)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket.full(capacity, refill_rate, now)
                self._buckets[key] = bucket

            if bucket.consume(now):
                return True, None

            wait = bucket.seconds_until_token()

        retry_after = None if math.isinf(wait) else max(1, math.ceil(wait))
        return False, retry_after

    def reset(self) -> None:
        """Drop all buckets."""
        with self._lock:
            self._buckets.clear()
