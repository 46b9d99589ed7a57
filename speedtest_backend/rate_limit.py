"""Fixed-window request limiter shared by every caller of an endpoint."""

from __future__ import annotations

import threading
import time
from typing import Callable


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int = 5,
        window: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._reset_at = clock() + window

    def allow(self) -> bool:
        with self._lock:
            now = self._clock()
            if now > self._reset_at:
                self._count = 0
                self._reset_at = now + self.window

            if self._count < self.max_requests:
                self._count += 1
                return True
            return False
