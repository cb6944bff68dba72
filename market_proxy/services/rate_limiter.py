"""
Per-client sliding-window request limiter.
"""
import logging
import math
import time
from typing import Callable, Dict, List

from market_proxy.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Counts each client's accepted requests over the trailing window.

    Up to ``max_requests`` may arrive back to back; after that the client is
    refused until its oldest request leaves the window. Refused requests are
    not recorded.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # client id -> request timestamps, oldest first
        self._windows: Dict[str, List[float]] = {}

    def _prune(self, client_id: str, now: float) -> List[float]:
        window_start = now - self.window_seconds
        requests = [t for t in self._windows.get(client_id, []) if t > window_start]
        if requests:
            self._windows[client_id] = requests
        else:
            self._windows.pop(client_id, None)
        return requests

    def admit(self, client_id: str) -> bool:
        now = self._clock()
        requests = self._prune(client_id, now)

        if len(requests) >= self.max_requests:
            logger.warning(f"Rate limit exceeded for {client_id}")
            return False

        requests.append(now)
        self._windows[client_id] = requests
        return True

    def retry_after(self, client_id: str) -> int:
        """Seconds until the client may be admitted again (0 if it may now)"""
        now = self._clock()
        requests = self._prune(client_id, now)
        if len(requests) < self.max_requests:
            return 0
        # The oldest request that must expire to free a slot
        oldest = requests[len(requests) - self.max_requests]
        return max(1, math.ceil(oldest + self.window_seconds - now))

    def sweep(self) -> int:
        """Drop clients whose windows are empty; returns how many were removed"""
        now = self._clock()
        before = len(self._windows)
        for client_id in list(self._windows):
            self._prune(client_id, now)
        return before - len(self._windows)

    def tracked_clients(self) -> int:
        return len(self._windows)
