"""Smoothed token bucket rate limiter for mutating GitHub requests.

Permits are issued at a steady rate. Unused time accumulates stored
permits, capped at one second's worth, so a short burst after an idle
period is served immediately. ``acquire()`` blocks until the permit's
scheduled time.

Pattern based on:
- Token Bucket Algorithm: https://en.wikipedia.org/wiki/Token_bucket
- Guava SmoothBursty rate limiter scheduling
"""

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger("ghpublish.github.rate_limiter")

__all__ = ["FALLBACK_PERMITS_PER_SECOND", "SmoothRateLimiter"]

# GitHub allows roughly 20 content-creating calls per minute
FALLBACK_PERMITS_PER_SECOND = 20.0 / 60.0


class SmoothRateLimiter:
    """Thread-safe smoothed rate limiter.

    Attributes:
        permits_per_second: Sustained rate
        max_burst_seconds: Idle time that can be banked as stored permits

    Example:
        >>> limiter = SmoothRateLimiter(0.5)
        >>> limiter.acquire()  # first permit is immediate
        0.0
    """

    def __init__(
        self,
        permits_per_second: float,
        max_burst_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if permits_per_second <= 0:
            raise ValueError(f"permits_per_second must be positive, got {permits_per_second}")
        self.permits_per_second = permits_per_second
        self.max_burst_seconds = max_burst_seconds
        self._interval = 1.0 / permits_per_second
        self._max_permits = max_burst_seconds * permits_per_second
        self._stored_permits = 0.0
        self._clock = clock
        self._sleep = sleep
        self._next_free = clock()
        self._lock = threading.Lock()

    def _resync(self, now: float) -> None:
        if now > self._next_free:
            new_permits = (now - self._next_free) / self._interval
            self._stored_permits = min(self._max_permits, self._stored_permits + new_permits)
            self._next_free = now

    def _reserve(self, permits: int) -> float:
        """Reserve permits and return the seconds to wait before using them."""
        with self._lock:
            now = self._clock()
            self._resync(now)
            moment = self._next_free
            from_storage = min(float(permits), self._stored_permits)
            fresh = permits - from_storage
            self._next_free += fresh * self._interval
            self._stored_permits -= from_storage
            return max(moment - now, 0.0)

    def acquire(self, permits: int = 1) -> float:
        """Block until permits are available.

        Args:
            permits: Number of permits to take (default: 1)

        Returns:
            Seconds spent waiting
        """
        if permits < 1:
            raise ValueError(f"permits must be at least 1, got {permits}")
        wait = self._reserve(permits)
        if wait > 0:
            logger.debug(
                "rate_limit_wait",
                extra={"wait_seconds": round(wait, 3), "permits": permits},
            )
            self._sleep(wait)
        return wait
