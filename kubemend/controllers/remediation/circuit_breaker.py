"""Rate limiter and circuit breaker guarding eviction calls.

Two independent gates sit in front of every eviction:

- a token bucket refilling at ``evictions_per_second`` up to ``burst`` tokens
- a breaker state machine over the outcomes of the trailing window::

      CLOSED --(>= min_samples and failure ratio > threshold)--> OPEN
      OPEN --(cooldown elapsed)--> HALF_OPEN
      HALF_OPEN --(probe succeeded)--> CLOSED   (window cleared)
      HALF_OPEN --(probe failed)--> OPEN        (cooldown restarts)

The OPEN -> HALF_OPEN transition is evaluated lazily when ``state`` is read,
so the breaker needs no timer task. Only one probe is admitted while
half-open. Every transition starts a new generation; a ``Permit`` carries the
generation it was issued in, and outcomes reported with a permit from an
earlier generation are ignored. All state lives on the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from kubemend.constants.defaults import (
    BREAKER_COOLDOWN_SECONDS_DEFAULT,
    BREAKER_MIN_SAMPLES_DEFAULT,
    BURST_DEFAULT,
    EVICTIONS_PER_SECOND_DEFAULT,
    FAILURE_RATIO_THRESHOLD_DEFAULT,
    FAILURE_WINDOW_SECONDS_DEFAULT,
)
from kubemend.constants.enums import BreakerState
from kubemend.constants.timeouts import BREAKER_POLL_INTERVAL
from kubemend.models.state.app_settings import RemediationSettings
from kubemend.utils.async_utils import StopAwareSleep, interruptible_sleep

logger = logging.getLogger(__name__)


@dataclass
class BreakerStatus:
    """Point-in-time view of the breaker, for logs and summaries."""

    state: BreakerState
    samples: int
    failures: int
    failure_ratio: float
    times_opened: int
    open_remaining: float | None = None


@dataclass(frozen=True)
class Permit:
    """Admission for one eviction call."""

    generation: int
    probe: bool = False


class TokenBucket:
    """Classic token bucket; ``try_take`` never blocks."""

    def __init__(
        self,
        rate: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._tokens = float(capacity)
        self._updated = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated = now

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def try_take(self) -> float:
        """Take one token.

        Returns:
            0.0 when a token was taken, otherwise the seconds until one is available.
        """
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.rate


class EvictionRateLimiter:
    """Token-bucket throttle combined with a failure-ratio circuit breaker."""

    def __init__(
        self,
        evictions_per_second: float = EVICTIONS_PER_SECOND_DEFAULT,
        burst: int = BURST_DEFAULT,
        failure_ratio_threshold: float = FAILURE_RATIO_THRESHOLD_DEFAULT,
        window_seconds: float = FAILURE_WINDOW_SECONDS_DEFAULT,
        min_samples: int = BREAKER_MIN_SAMPLES_DEFAULT,
        cooldown_seconds: float = BREAKER_COOLDOWN_SECONDS_DEFAULT,
        clock: Callable[[], float] = time.monotonic,
        sleep: StopAwareSleep = interruptible_sleep,
    ) -> None:
        self._bucket = TokenBucket(evictions_per_second, burst, clock)
        self._threshold = failure_ratio_threshold
        self._window = window_seconds
        self._min_samples = min_samples
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._sleep = sleep

        self._outcomes: deque[tuple[float, bool]] = deque()
        self._state = BreakerState.CLOSED
        self._opened_at: float | None = None
        self._probe_in_flight = False
        self._generation = 0
        self.times_opened = 0

    @classmethod
    def from_settings(
        cls, settings: RemediationSettings, **kwargs: object
    ) -> EvictionRateLimiter:
        return cls(
            evictions_per_second=settings.evictions_per_second,
            burst=settings.burst,
            failure_ratio_threshold=settings.failure_ratio_threshold,
            window_seconds=settings.failure_window_seconds,
            min_samples=settings.breaker_min_samples,
            cooldown_seconds=settings.breaker_cooldown_seconds,
            **kwargs,  # type: ignore[arg-type]
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> BreakerState:
        if (
            self._state == BreakerState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self._cooldown
        ):
            self._transition(BreakerState.HALF_OPEN)
        return self._state

    def _transition(self, new_state: BreakerState) -> None:
        old_state = self._state
        self._state = new_state
        self._generation += 1
        if new_state == BreakerState.OPEN:
            self._opened_at = self._clock()
            self.times_opened += 1
            self._outcomes.clear()
            logger.warning(
                "Circuit breaker %s -> open, pausing evictions for %.1fs",
                old_state.value,
                self._cooldown,
            )
        elif new_state == BreakerState.CLOSED:
            self._opened_at = None
            self._outcomes.clear()
            logger.info("Circuit breaker %s -> closed, resuming evictions", old_state.value)
        else:
            logger.info("Circuit breaker %s -> half_open, admitting one probe", old_state.value)
        if new_state != BreakerState.HALF_OPEN:
            self._probe_in_flight = False

    def _prune(self, now: float) -> None:
        horizon = now - self._window
        while self._outcomes and self._outcomes[0][0] <= horizon:
            self._outcomes.popleft()

    @property
    def failure_ratio(self) -> float:
        self._prune(self._clock())
        if not self._outcomes:
            return 0.0
        failures = sum(1 for _, ok in self._outcomes if not ok)
        return failures / len(self._outcomes)

    def status(self) -> BreakerStatus:
        state = self.state
        self._prune(self._clock())
        failures = sum(1 for _, ok in self._outcomes if not ok)
        remaining = None
        if state == BreakerState.OPEN and self._opened_at is not None:
            remaining = max(0.0, self._cooldown - (self._clock() - self._opened_at))
        return BreakerStatus(
            state=state,
            samples=len(self._outcomes),
            failures=failures,
            failure_ratio=failures / len(self._outcomes) if self._outcomes else 0.0,
            times_opened=self.times_opened,
            open_remaining=remaining,
        )

    # =========================================================================
    # Permits
    # =========================================================================

    def try_acquire(self) -> tuple[Permit | None, float]:
        """Try to obtain a permit without waiting.

        Returns:
            ``(permit, 0.0)`` when granted, otherwise ``(None, wait)`` with the
            suggested wait in seconds.
        """
        state = self.state
        if state == BreakerState.OPEN:
            opened_at = self._opened_at if self._opened_at is not None else self._clock()
            remaining = self._cooldown - (self._clock() - opened_at)
            return None, max(remaining, BREAKER_POLL_INTERVAL)
        if state == BreakerState.HALF_OPEN and self._probe_in_flight:
            return None, BREAKER_POLL_INTERVAL

        wait = self._bucket.try_take()
        if wait > 0:
            return None, wait
        if state == BreakerState.HALF_OPEN:
            self._probe_in_flight = True
            logger.debug("Half-open probe admitted")
            return Permit(self._generation, probe=True), 0.0
        return Permit(self._generation), 0.0

    async def acquire(self, stop: asyncio.Event | None = None) -> Permit | None:
        """Wait until a permit is granted.

        Returns:
            The permit, or None if ``stop`` was set first.
        """
        while True:
            if stop is not None and stop.is_set():
                return None
            permit, wait = self.try_acquire()
            if permit is not None:
                return permit
            if await self._sleep(wait, stop):
                return None

    def _is_stale(self, permit: Permit | None) -> bool:
        return permit is not None and permit.generation != self._generation

    def release(self, permit: Permit | None = None) -> None:
        """Give back a permit that was not used for an API call."""
        if permit is None or not permit.probe or self._is_stale(permit):
            return
        self._probe_in_flight = False

    # =========================================================================
    # Outcomes
    # =========================================================================

    def record_success(self, permit: Permit | None = None) -> None:
        state = self.state
        if self._is_stale(permit):
            logger.debug("Ignoring success from breaker generation %d", permit.generation)
            return
        if state == BreakerState.HALF_OPEN:
            if permit is not None and permit.probe:
                self._transition(BreakerState.CLOSED)
            return
        if state == BreakerState.OPEN:
            return
        now = self._clock()
        self._outcomes.append((now, True))
        self._prune(now)

    def record_failure(self, permit: Permit | None = None) -> None:
        state = self.state
        if self._is_stale(permit):
            logger.debug("Ignoring failure from breaker generation %d", permit.generation)
            return
        if state == BreakerState.HALF_OPEN:
            if permit is not None and permit.probe:
                logger.warning("Half-open probe failed")
                self._transition(BreakerState.OPEN)
            return
        if state == BreakerState.OPEN:
            return
        now = self._clock()
        self._outcomes.append((now, False))
        self._prune(now)

        samples = len(self._outcomes)
        failures = sum(1 for _, ok in self._outcomes if not ok)
        if samples >= self._min_samples and failures / samples > self._threshold:
            logger.warning(
                "Failure ratio %.2f over %d samples exceeds %.2f",
                failures / samples,
                samples,
                self._threshold,
            )
            self._transition(BreakerState.OPEN)


__all__ = ["BreakerStatus", "EvictionRateLimiter", "Permit", "TokenBucket"]
