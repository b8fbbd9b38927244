"""Rate limit for repeated error log lines."""
from __future__ import annotations

import time
from typing import Callable, Optional


class LogThrottle:
    """
    Allows one log line per interval.

    Usage:
        throttle = LogThrottle(2.0)
        if throttle.ready():
            logger.error(...)
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = interval
        self.clock = clock
        self._last: Optional[float] = None

    def ready(self) -> bool:
        now = self.clock()
        if self._last is None or now - self._last >= self.interval:
            self._last = now
            return True
        return False
