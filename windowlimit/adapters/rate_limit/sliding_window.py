"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: every limiter instance keeps its own window.
- Thread-safe: a lock guards the timestamp deque and the counters, and
  ``attempt`` checks and records in one critical section.
- Lazy eviction: expired timestamps are trimmed right before every capacity
  check or usage read, never by a background timer.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from datetime import timedelta
from typing import Any, Callable

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter, AdmissionResult, Strategy
from windowlimit.core.durations import to_seconds
from windowlimit.core.errors import InvalidConfigurationError, RateLimitExceededError

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Admit at most ``capacity`` attempts in any rolling ``window_seconds``.

    An admission recorded at ``t`` counts against the window until the clock
    moves strictly past ``t + window_seconds``; the boundary instant itself is
    still inside the window.

    Usage:
        >>> limiter = SlidingWindowRateLimiter(capacity=5, window_seconds=60)
        >>> [limiter.attempt().admitted for _ in range(6)]
        [True, True, True, True, True, False]
        >>> limiter.used_capacity()
        5

    With ``strategy="error"`` the over-capacity attempt raises
    ``RateLimitExceededError`` instead of returning a non-admitted result.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float | timedelta,
        strategy: Strategy | str = Strategy.DROP,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            capacity: Maximum admissions per window. Zero rejects everything.
            window_seconds: Rolling window size, in seconds or as a timedelta.
            strategy: Overflow strategy, ``"drop"`` or ``"error"``.
            clock: Time source returning seconds; only differences matter.

        Raises:
            InvalidConfigurationError: If any argument is invalid.
        """
        strategy = Strategy.parse(strategy)
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
            raise InvalidConfigurationError(
                f"capacity must be a non-negative integer, got {capacity!r}",
                details={"field": "capacity", "value": repr(capacity)},
            )
        window = to_seconds(window_seconds)
        if not window > 0 or math.isinf(window):
            raise InvalidConfigurationError(
                f"window_seconds must be a positive finite duration, got {window_seconds!r}",
                details={"field": "window_seconds", "value": repr(window_seconds)},
            )

        self._capacity = capacity
        self._window_seconds = window
        self._strategy = strategy
        self._clock = clock
        self._lock = threading.RLock()
        self._timestamps: deque[float] = deque()
        self._total_attempts = 0
        self._dropped_count = 0
        self._errored_count = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    @property
    def total_attempts(self) -> int:
        with self._lock:
            return self._total_attempts

    @property
    def dropped_count(self) -> int:
        with self._lock:
            return self._dropped_count

    @property
    def errored_count(self) -> int:
        with self._lock:
            return self._errored_count

    def _evict_expired_locked(self, now: float) -> None:
        # Timestamps are ordered, so trimming the stale prefix is enough.
        cutoff = now - self._window_seconds
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def _retry_after_locked(self, now: float) -> float:
        if len(self._timestamps) < self._capacity:
            return 0.0
        if not self._timestamps:
            return math.inf
        # The boundary instant is still inside the window, so a full window
        # always reports a strictly positive wait.
        remaining = self._timestamps[0] + self._window_seconds - now
        return remaining if remaining > 0 else math.nextafter(0.0, math.inf)

    def _now_locked(self) -> float:
        now = self._clock()
        # A clock that steps backwards must not break the ordering of the deque.
        if self._timestamps and now < self._timestamps[-1]:
            return self._timestamps[-1]
        return now

    def is_at_capacity(self) -> bool:
        """Return True when the window is full.

        Read-only: it does not reserve a slot. Use ``attempt`` to check and
        record atomically.
        """
        with self._lock:
            self._evict_expired_locked(self._now_locked())
            return len(self._timestamps) >= self._capacity

    def used_capacity(self) -> int:
        """Return the number of admissions inside the current window.

        Useful for monitoring and for warning callers that are close to, but
        not over, the limit.
        """
        with self._lock:
            self._evict_expired_locked(self._now_locked())
            return len(self._timestamps)

    def seconds_until_available(self) -> float:
        with self._lock:
            now = self._now_locked()
            self._evict_expired_locked(now)
            return self._retry_after_locked(now)

    def attempt(self) -> AdmissionResult:
        """Count an attempt and admit it if the window has room.

        Returns:
            An admitted result, or under the drop strategy a non-admitted one.

        Raises:
            RateLimitExceededError: Under the error strategy when the window
                is full.
        """
        with self._lock:
            self._total_attempts += 1
            now = self._now_locked()
            self._evict_expired_locked(now)
            used = len(self._timestamps)

            if used < self._capacity:
                self._timestamps.append(now)
                logger.debug(
                    "rate_limit.admitted",
                    extra={"capacity": self._capacity, "used": used + 1},
                )
                return AdmissionResult(
                    admitted=True,
                    capacity=self._capacity,
                    used=used + 1,
                    remaining=self._capacity - used - 1,
                )

            retry_after = self._retry_after_locked(now)
            if self._strategy is Strategy.ERROR:
                self._errored_count += 1
                logger.warning(
                    "rate_limit.exceeded",
                    extra={
                        "capacity": self._capacity,
                        "window_s": self._window_seconds,
                        "retry_after_s": retry_after,
                        "errored_count": self._errored_count,
                    },
                )
                raise RateLimitExceededError(self._capacity, self._window_seconds, retry_after)

            self._dropped_count += 1
            logger.info(
                "rate_limit.dropped",
                extra={
                    "capacity": self._capacity,
                    "window_s": self._window_seconds,
                    "retry_after_s": retry_after,
                    "dropped_count": self._dropped_count,
                },
            )
            return AdmissionResult(
                admitted=False,
                capacity=self._capacity,
                used=used,
                remaining=0,
                retry_after_seconds=retry_after,
            )

    def stats(self) -> dict[str, Any]:
        """Return configuration, current usage and lifetime counters."""

        with self._lock:
            now = self._now_locked()
            self._evict_expired_locked(now)
            used = len(self._timestamps)
            return {
                "capacity": self._capacity,
                "window_seconds": self._window_seconds,
                "strategy": self._strategy.value,
                "used": used,
                "at_capacity": used >= self._capacity,
                "retry_after_seconds": self._retry_after_locked(now),
                "total_attempts": self._total_attempts,
                "dropped_count": self._dropped_count,
                "errored_count": self._errored_count,
            }

    def __repr__(self) -> str:
        return (
            f"SlidingWindowRateLimiter(capacity={self._capacity}, "
            f"window_seconds={self._window_seconds:g}, strategy={self._strategy.value!r})"
        )

    def __str__(self) -> str:
        snapshot = self.stats()
        return (
            f"         limit: {snapshot['capacity']} per {snapshot['window_seconds']:g} sec\n"
            f"      strategy: {snapshot['strategy']}\n"
            f"   at_capacity: {snapshot['at_capacity']}\n"
            f" used_capacity: {snapshot['used']}\n"
            f"total_attempts: {snapshot['total_attempts']}\n"
            f" dropped_count: {snapshot['dropped_count']}\n"
            f" errored_count: {snapshot['errored_count']}\n"
        )
