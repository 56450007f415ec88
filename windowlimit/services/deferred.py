"""Deferred execution of tasks that could not be admitted right away.

Design:
- Bounded FIFO: ``submit`` raises ``QueueFullError`` when ``max_size`` tasks
  are already pending, so producers see backpressure instead of unbounded
  memory growth.
- Single drainer thread: it takes the oldest pending task, waits until the
  limiter reports free capacity, re-attempts admission and executes the task
  on success.
- The limiter stays a pure gate; this queue is the only place that both
  admits and invokes.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter
from windowlimit.core.errors import InvalidConfigurationError, QueueFullError, RateLimitExceededError
from windowlimit.services.task import Task

logger = logging.getLogger(__name__)

# Shortest sleep between admission retries by the drainer
MIN_RETRY_SECONDS = 0.001


class DeferredTaskQueue:
    """Run tasks as soon as a limiter admits them, queueing the rest.

    Usage:
        >>> limiter = SlidingWindowRateLimiter(capacity=2, window_seconds=1.0)
        >>> with DeferredTaskQueue(limiter, max_size=10) as queue:
        ...     for n in range(5):
        ...         queue.submit(Task(send_ping, None, n))
        ...     queue.wait_until_empty(timeout=5)
    """

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        *,
        max_size: int = 100,
        poll_interval: float = 0.5,
    ) -> None:
        """Initialize the queue. The drainer is not started until ``start``.

        Args:
            limiter: Limiter gating every execution.
            max_size: Maximum number of pending tasks.
            poll_interval: Longest single wait before the drainer re-checks
                the limiter.

        Raises:
            InvalidConfigurationError: If max_size or poll_interval is invalid.
        """
        if max_size < 1:
            raise InvalidConfigurationError(
                "max_size must be >= 1", details={"field": "max_size", "value": repr(max_size)}
            )
        if poll_interval <= 0:
            raise InvalidConfigurationError(
                "poll_interval must be > 0",
                details={"field": "poll_interval", "value": repr(poll_interval)},
            )

        self._limiter = limiter
        self._max_size = max_size
        self._poll_interval = poll_interval
        self._pending: deque[Task] = deque()
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._stopping = False
        self._drain_on_stop = False
        self._in_flight = 0
        self._enqueued = 0
        self._executed = 0
        self._rejected = 0
        self._failed = 0

    def __enter__(self) -> "DeferredTaskQueue":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop(drain=True)

    @property
    def max_size(self) -> int:
        return self._max_size

    def pending(self) -> int:
        """Number of tasks waiting for admission."""
        with self._cond:
            return len(self._pending)

    def _try_admit(self) -> bool:
        try:
            return self._limiter.attempt().admitted
        except RateLimitExceededError:
            return False

    def submit(self, task: Task) -> bool:
        """Execute ``task`` now if possible, otherwise queue it.

        A task only skips the queue when nothing else is pending, so tasks
        run in submission order.

        Returns:
            True if the task was admitted and executed on the calling thread,
            False if it was queued for the drainer.

        Raises:
            QueueFullError: If the queue already holds ``max_size`` tasks.
        """
        with self._cond:
            admitted = not self._pending and self._try_admit()
            if not admitted:
                if len(self._pending) >= self._max_size:
                    self._rejected += 1
                    logger.warning(
                        "queue.rejected",
                        extra={"task_id": task.task_id, "max_size": self._max_size},
                    )
                    raise QueueFullError(self._max_size)
                self._pending.append(task)
                self._enqueued += 1
                self._cond.notify_all()
                logger.info(
                    "queue.enqueued",
                    extra={"task_id": task.task_id, "pending": len(self._pending)},
                )
                return False
            self._in_flight += 1

        try:
            ran = task.execute()
        finally:
            with self._cond:
                self._in_flight -= 1
                self._cond.notify_all()
        if ran:
            with self._cond:
                self._executed += 1
        return True

    def start(self) -> None:
        """Start the drainer thread (no-op if it is already running)."""
        with self._cond:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stopping = False
            self._drain_on_stop = False
            self._thread = threading.Thread(
                target=self._drain_loop, name="windowlimit-drainer", daemon=True
            )
            self._thread.start()
        logger.debug("queue.started", extra={"max_size": self._max_size})

    def stop(self, *, drain: bool = False, timeout: float | None = None) -> list[Task]:
        """Stop the drainer thread.

        Args:
            drain: Keep running until every pending task has executed. With a
                limiter that never frees capacity this waits for ``timeout``.
            timeout: Maximum time to wait for the drainer to exit.

        Returns:
            Tasks that were still pending when the drainer stopped; they are
            removed from the queue and never executed by it.
        """
        with self._cond:
            self._stopping = True
            self._drain_on_stop = drain
            self._cond.notify_all()
            thread = self._thread

        if thread is not None:
            thread.join(timeout)

        with self._cond:
            if thread is not None and not thread.is_alive():
                self._thread = None
            if self._thread is not None:
                return []
            leftover = list(self._pending)
            self._pending.clear()
            self._cond.notify_all()

        logger.info("queue.stopped", extra={"abandoned": len(leftover), "drained": drain})
        return leftover

    def wait_until_empty(self, timeout: float | None = None) -> bool:
        """Block until no task is pending or executing.

        Returns:
            True if the queue emptied, False on timeout.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._pending and self._in_flight == 0, timeout=timeout
            )

    def stats(self) -> dict[str, Any]:
        """Return queue counters without exposing the queued tasks."""
        with self._cond:
            return {
                "pending": len(self._pending),
                "max_size": self._max_size,
                "in_flight": self._in_flight,
                "enqueued": self._enqueued,
                "executed": self._executed,
                "rejected": self._rejected,
                "failed": self._failed,
                "running": self._thread is not None and self._thread.is_alive(),
            }

    def _backoff(self, wait: float) -> float:
        return min(max(wait, MIN_RETRY_SECONDS), self._poll_interval)

    def _next_admitted_locked(self) -> Task | None:
        """Wait (lock held) for a pending task to be admitted, or for stop."""
        while True:
            while not self._pending and not self._stopping:
                self._cond.wait()
            if self._stopping and (not self._drain_on_stop or not self._pending):
                return None

            wait = self._limiter.seconds_until_available()
            if wait > 0 or self._limiter.is_at_capacity():
                self._cond.wait(self._backoff(wait))
                continue
            if not self._try_admit():
                # Another caller took the slot between the check and the attempt.
                self._cond.wait(self._backoff(self._limiter.seconds_until_available()))
                continue

            task = self._pending.popleft()
            self._in_flight += 1
            return task

    def _drain_loop(self) -> None:
        while True:
            with self._cond:
                task = self._next_admitted_locked()
            if task is None:
                return
            self._run(task)

    def _run(self, task: Task) -> None:
        ran = False
        failed = False
        try:
            ran = task.execute()
        except Exception as exc:
            failed = True
            logger.error(
                "queue.task_failed",
                extra={"task_id": task.task_id, "error_type": type(exc).__name__},
                exc_info=True,
            )
        finally:
            with self._cond:
                self._in_flight -= 1
                if failed:
                    self._failed += 1
                elif ran:
                    self._executed += 1
                self._cond.notify_all()

        if ran:
            logger.info("queue.drained", extra={"task_id": task.task_id})
