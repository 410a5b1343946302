"""
Sliding-window rate limiting for the gateway's ``/api`` routes.

A server answers over-limit callers with 429 instead of sleeping, so
``RateLimiter.acquire`` never blocks: it records the call or reports how
long the caller has to wait.
"""

import time
from collections import deque
from collections.abc import Callable
from threading import Lock


class RateLimiter:
    """Thread-safe limiter allowing *calls* per *period* seconds."""

    def __init__(
        self, calls: int, period: float, clock: Callable[[], float] = time.monotonic
    ):
        self.calls = calls
        self.period = period
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._lock = Lock()

    def acquire(self) -> float | None:
        """Record a call if the window has room.

        Returns:
            ``None`` when the call is allowed, otherwise the seconds until
            the oldest call in the window expires.
        """
        with self._lock:
            now = self._clock()
            cutoff = now - self.period
            while self._timestamps and self._timestamps[0] <= cutoff:
                self._timestamps.popleft()

            if len(self._timestamps) >= self.calls:
                return self.period - (now - self._timestamps[0])

            self._timestamps.append(now)
            return None


class ClientRateLimiters:
    """One ``RateLimiter`` per client key (the caller's address)."""

    def __init__(
        self, calls: int, period: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.calls = calls
        self.period = period
        self._clock = clock
        self.limiters: dict[str, RateLimiter] = {}
        self.lock = Lock()

    def get_limiter(self, key: str) -> RateLimiter:
        with self.lock:
            if key not in self.limiters:
                self.limiters[key] = RateLimiter(self.calls, self.period, self._clock)
            return self.limiters[key]

    def acquire(self, key: str) -> float | None:
        return self.get_limiter(key).acquire()
