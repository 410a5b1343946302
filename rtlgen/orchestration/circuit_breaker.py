"""
Per-dependency circuit breaker.

The breaker state is an immutable ``BreakerSnapshot``; transitions are
pure functions of (snapshot, clock reading, configuration) so they can
be tested without waiting on real time. ``CircuitBreaker`` owns the
current snapshot and serializes updates with a lock.

A HALF_OPEN probe that fails reopens the circuit immediately with a new
cooldown; there is no separate trial budget.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from threading import Lock
from typing import TypeVar

from ..core.exceptions import DEPENDENCY_FAILURES, RTLGenError, ServiceUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Breaker state at one point in time.

    Attributes:
        state: Current circuit state.
        failure_count: Consecutive failures since the last success.
        next_attempt_at: Clock reading after which an OPEN circuit lets a
            probe through; ``None`` unless the circuit has opened.
    """

    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    next_attempt_at: float | None = None


def on_call_attempt(snapshot: BreakerSnapshot, now: float) -> tuple[BreakerSnapshot, bool]:
    """Decide whether a call may proceed.

    Returns:
        The (possibly HALF_OPEN) snapshot and ``True`` if the call is allowed.
    """
    if snapshot.state is not CircuitState.OPEN:
        return snapshot, True
    if snapshot.next_attempt_at is not None and now >= snapshot.next_attempt_at:
        return replace(snapshot, state=CircuitState.HALF_OPEN), True
    return snapshot, False


def on_success(snapshot: BreakerSnapshot) -> BreakerSnapshot:
    return BreakerSnapshot()


def on_failure(
    snapshot: BreakerSnapshot, now: float, threshold: int, cooldown: float
) -> BreakerSnapshot:
    failure_count = snapshot.failure_count + 1
    if snapshot.state is CircuitState.HALF_OPEN or failure_count >= threshold:
        return BreakerSnapshot(
            state=CircuitState.OPEN,
            failure_count=failure_count,
            next_attempt_at=now + cooldown,
        )
    return BreakerSnapshot(state=CircuitState.CLOSED, failure_count=failure_count)


class CircuitBreaker:
    """Thread-safe circuit breaker around async calls to one dependency."""

    def __init__(
        self,
        service: str,
        threshold: int,
        cooldown: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the breaker.

        Args:
            service: Dependency name used in errors and logs
            threshold: Consecutive failures that open the circuit
            cooldown: Seconds an open circuit rejects calls
            clock: Monotonic clock, injectable for tests
        """
        self.service = service
        self.threshold = threshold
        self.cooldown = cooldown
        self._clock = clock
        self._snapshot = BreakerSnapshot()
        self._lock = Lock()

    @property
    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> CircuitState:
        return self.snapshot.state

    async def call(
        self,
        action: Callable[[], Awaitable[T]],
        correlation_id: str | None = None,
    ) -> T:
        """Run *action* through the breaker.

        Only dependency failures are recorded; request errors such as a
        parse failure say nothing about the dependency's health and count
        as a successful round trip.

        Raises:
            ServiceUnavailableError: If the circuit is open. *action* is
                not invoked.
        """
        with self._lock:
            now = self._clock()
            self._snapshot, allowed = on_call_attempt(self._snapshot, now)
            snapshot = self._snapshot

        if not allowed:
            remaining = max(0.0, (snapshot.next_attempt_at or now) - now)
            raise ServiceUnavailableError.for_service(
                self.service,
                correlation_id,
                f"Circuit breaker open. Next attempt in {remaining:.1f}s",
            )

        try:
            result = await action()
        except DEPENDENCY_FAILURES:
            self._record_failure(correlation_id)
            raise
        except RTLGenError:
            self._record_success()
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        with self._lock:
            self._snapshot = on_success(self._snapshot)

    def _record_failure(self, correlation_id: str | None) -> None:
        with self._lock:
            previous = self._snapshot.state
            self._snapshot = on_failure(
                self._snapshot, self._clock(), self.threshold, self.cooldown
            )
            snapshot = self._snapshot

        if snapshot.state is CircuitState.OPEN and previous is not CircuitState.OPEN:
            logger.warning(
                f"Circuit opened for {self.service}",
                extra={
                    "correlation_id": correlation_id,
                    "service": self.service,
                    "state": snapshot.state.value,
                },
            )
