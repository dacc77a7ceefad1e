"""
In-memory fixed-window rate limiter.

State lives in the process, so each API instance keeps its own counters.
"""

import time
from typing import Dict, Optional, Tuple


class RateLimiter:
    """Allow at most `max_requests` per `window_seconds` for each key."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        # key -> (count, reset_at)
        self._windows: Dict[str, Tuple[int, float]] = {}

    def check(self, key: str, now: Optional[float] = None) -> Tuple[bool, int]:
        """
        Count one request for `key`.

        Returns (allowed, retry_after_seconds). retry_after is 0 when allowed.
        """
        now = time.time() if now is None else now
        count, reset_at = self._windows.get(key, (0, 0.0))

        if now >= reset_at:
            self._windows[key] = (1, now + self.window_seconds)
            return True, 0

        if count >= self.max_requests:
            return False, max(1, int(reset_at - now + 0.999))

        self._windows[key] = (count + 1, reset_at)
        return True, 0

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)
