"""Single-slot in-memory cache for the full survey result set."""
import threading
import time
from typing import Any, Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)


class ResultsCache:
    """
    Holds the most recent full list of responses with a capture timestamp.

    Entries expire by age only. Inserts and deletes do not touch the slot, so
    a warm cache may be stale for up to ``ttl`` seconds. Empty lists are never
    served from the cache.
    """

    def __init__(self, ttl: float = 300.0):
        self.ttl = ttl
        self._value: Optional[list[Any]] = None
        self._captured_at = 0.0
        self._lock = threading.Lock()

    def get(self) -> Optional[list[Any]]:
        """Return the cached list if it is fresh and non-empty."""
        with self._lock:
            if not self._value:
                return None
            if time.time() - self._captured_at >= self.ttl:
                return None
            return self._value

    def set(self, value: list[Any]) -> None:
        with self._lock:
            self._value = value
            self._captured_at = time.time()

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._captured_at = 0.0

    async def get_or_load(self, loader: Callable[[], Awaitable[list[Any]]]) -> list[Any]:
        """Serve from the slot, otherwise await ``loader`` and repopulate."""
        cached = self.get()
        if cached is not None:
            logger.debug(f"Serving {len(cached)} results from cache")
            return cached

        value = await loader()
        self.set(value)
        return value
