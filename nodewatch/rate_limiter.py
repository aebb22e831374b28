"""Per-node pacing of outbound RPC calls."""
import threading
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


class RateLimiter:
    """
    Leaky-bucket limiter that paces callers to a fixed number of calls per second.

    Every call to take() is given the next free slot, one interval after the
    previous one. A caller arriving after its slot has passed proceeds at once
    and does not accumulate credit for later calls.
    """

    def __init__(self, rate: int = 0, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize a new rate limiter.

        Args:
            rate: Maximum calls per second; 0 or less means unlimited
            clock: Monotonic time source
            sleep: Function used to block the caller
        """
        self.rate = rate
        self.interval = 1.0 / rate if rate > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def unlimited(self) -> bool:
        return self.rate <= 0

    def take(self) -> float:
        """
        Block until the caller is allowed to proceed.

        Returns:
            The clock value of the slot granted to this call
        """
        if self.unlimited:
            return self._clock()

        # Reserve a slot under the lock, wait for it outside.
        with self._lock:
            now = self._clock()
            if self._last is None or now >= self._last + self.interval:
                self._last = now
                return now
            slot = self._last + self.interval
            self._last = slot
            wait = slot - now

        logger.debug("rate_limit_wait", rate=self.rate, wait=round(wait, 4))
        self._sleep(wait)
        return slot

    def __repr__(self) -> str:
        return f"RateLimiter(rate={self.rate})"
