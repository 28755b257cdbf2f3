"""Time-limited cache for downloaded live feeds."""

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .config import CACHE_SECONDS, MAX_CACHED_FEEDS

logger = logging.getLogger(__name__)


class FeedCache:
    """
    Caches feed payloads by name for a fixed time-to-live.

    Each LiveFeedClient owns its own cache; there is no shared module-level
    state.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_SECONDS,
        clock: Callable[[], float] = time.time,
        max_entries: int = MAX_CACHED_FEEDS,
    ):
        """
        Args:
            ttl_seconds: How long an entry stays fresh.
            clock: Returns the current time in seconds; injectable for tests.
            max_entries: Oldest entries are evicted beyond this size.
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[Any, float]] = {}  # name -> (data, timestamp)

    def get(self, name: str) -> Optional[Any]:
        """Return the cached payload if it is still fresh, else None."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        data, timestamp = entry
        if self.clock() - timestamp < self.ttl_seconds:
            logger.debug(f"Using cached data for {name}")
            return data
        return None

    def put(self, name: str, data: Any) -> None:
        """Store a payload, evicting expired and (if full) the oldest entries."""
        now = self.clock()
        self._evict_expired(now)

        if name not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]

        self._entries[name] = (data, now)

    def fetched_at(self, name: str) -> Optional[float]:
        """Timestamp at which ``name`` was stored, if cached."""
        entry = self._entries.get(name)
        return entry[1] if entry else None

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
