"""
Caching utilities for the client file loader.

FileCache keeps fetched file contents keyed by filename for a bounded
lifetime. The clock is injectable so expiry can be tested without sleeping.
"""

import time
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


class FileCache:
    """
    TTL cache keyed by filename.

    Last write wins per key. An entry is fresh while
    ``clock() - stored_at < ttl_seconds``.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        _, stored_at = entry
        return self._clock() - stored_at < self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """Value for key if it is still fresh, else None."""
        if not self.is_fresh(key):
            return None
        return self._entries[key][0]

    def set(self, key: str, value: Any):
        self._entries[key] = (value, self._clock())

    def stale_keys(self, keys: Iterable[str]) -> List[str]:
        """Keys from ``keys`` that are missing or past their lifetime."""
        return [key for key in keys if not self.is_fresh(key)]

    def clear(self):
        """Drop every entry unconditionally."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared file cache ({count} entries)")
