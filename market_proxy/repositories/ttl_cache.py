"""
In-process key/value cache with a fixed time-to-live.

Entries are checked for expiry when they are read; nothing runs in the
background unless ``purge_expired`` is called explicitly.
"""
import time
from typing import Any, Callable, Dict, Optional, Tuple

from market_proxy.config import CACHE_TTL_SECONDS


class TTLCache:
    """Map of key -> (value, inserted_at) with lazy expiry"""

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def _is_expired(self, inserted_at: float, now: float) -> bool:
        return now - inserted_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, inserted_at = entry
        if self._is_expired(inserted_at, self._clock()):
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def purge_expired(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            key for key, (_, inserted_at) in self._entries.items()
            if self._is_expired(inserted_at, now)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(
            1 for _, inserted_at in self._entries.values()
            if not self._is_expired(inserted_at, now)
        )
