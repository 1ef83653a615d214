"""Fixed-window calls-per-minute limiter."""

from __future__ import annotations

import threading
import time
from typing import Callable


class RateLimiter:
    """
    Allows at most ``calls_per_minute`` acquisitions per 60-second window.

    The window resets a full minute after it opened.  ``acquire`` never
    blocks; callers drop or defer the work when it returns False.
    """

    def __init__(
        self,
        calls_per_minute: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.calls_per_minute = calls_per_minute
        self._clock = clock
        self._window_start = clock()
        self._used = 0
        self._lock = threading.Lock()

    def acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            if now - self._window_start >= 60.0:
                self._window_start = now
                self._used = 0
            if self._used >= self.calls_per_minute:
                return False
            self._used += 1
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            if self._clock() - self._window_start >= 60.0:
                return self.calls_per_minute
            return max(0, self.calls_per_minute - self._used)
