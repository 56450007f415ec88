"""Tests for the bounded deferred task queue and its drainer thread."""

import time

import pytest

from windowlimit.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from windowlimit.core.errors import InvalidConfigurationError, QueueFullError
from windowlimit.services.deferred import DeferredTaskQueue
from windowlimit.services.task import Task


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_submit_runs_immediately_when_admitted(clock, notifier) -> None:
    limiter = SlidingWindowRateLimiter(2, 60, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5)
    task = Task(lambda x: x + 1, notifier, 1)

    assert queue.submit(task) is True

    assert task.has_run is True
    assert notifier.calls == [2]
    assert queue.stats()["executed"] == 1
    assert queue.pending() == 0


def test_overflow_is_queued_not_dropped(clock) -> None:
    limiter = SlidingWindowRateLimiter(1, 60, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5)
    first, second = Task(lambda: 1), Task(lambda: 2)

    assert queue.submit(first) is True
    assert queue.submit(second) is False

    assert second.has_run is False
    assert queue.pending() == 1
    assert queue.stats()["enqueued"] == 1


def test_drainer_runs_queued_tasks_in_order_as_capacity_frees(clock) -> None:
    order: list[int] = []
    limiter = SlidingWindowRateLimiter(1, 10, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5, poll_interval=0.01)

    assert queue.submit(Task(order.append, None, 1)) is True
    assert queue.submit(Task(order.append, None, 2)) is False

    clock.advance(11)
    # A free slot does not let a newcomer jump ahead of pending work.
    assert queue.submit(Task(order.append, None, 3)) is False

    queue.start()
    try:
        assert _wait_for(lambda: order == [1, 2])
        assert queue.pending() == 1

        clock.advance(11)
        assert queue.wait_until_empty(timeout=5) is True
    finally:
        queue.stop()

    assert order == [1, 2, 3]
    assert queue.stats()["executed"] == 3


def test_drainer_waits_at_window_boundary_without_spending_attempts(clock) -> None:
    order: list[int] = []
    limiter = SlidingWindowRateLimiter(1, 10, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5, poll_interval=0.01)

    assert queue.submit(Task(order.append, None, 1)) is True
    assert queue.submit(Task(order.append, None, 2)) is False
    assert limiter.total_attempts == 2

    # The first admission is exactly one window old and still counts.
    clock.advance(10)
    queue.start()
    try:
        time.sleep(0.2)
        assert order == [1]
        assert limiter.total_attempts == 2
        assert limiter.dropped_count == 1

        clock.advance(0.001)
        assert queue.wait_until_empty(timeout=5) is True
    finally:
        queue.stop(timeout=5)

    assert order == [1, 2]
    assert limiter.total_attempts == 3
    assert queue.stats()["running"] is False


def test_bounded_queue_applies_backpressure(clock) -> None:
    limiter = SlidingWindowRateLimiter(0, 60, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=2)

    assert queue.submit(Task(lambda: None)) is False
    assert queue.submit(Task(lambda: None)) is False
    with pytest.raises(QueueFullError) as exc_info:
        queue.submit(Task(lambda: None))

    assert exc_info.value.code == "queue_full"
    assert exc_info.value.details["max_size"] == 2
    stats = queue.stats()
    assert stats["pending"] == 2
    assert stats["rejected"] == 1


def test_stop_without_drain_returns_pending_tasks(clock) -> None:
    limiter = SlidingWindowRateLimiter(0, 60, clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5, poll_interval=0.01)
    tasks = [Task(lambda: None) for _ in range(3)]
    for task in tasks:
        queue.submit(task)

    queue.start()
    leftover = queue.stop(timeout=5)

    assert leftover == tasks
    assert not any(task.has_run for task in tasks)
    assert queue.pending() == 0
    assert queue.stats()["running"] is False


def test_context_manager_drains_on_exit() -> None:
    results: list[int] = []
    limiter = SlidingWindowRateLimiter(1, 0.02)

    with DeferredTaskQueue(limiter, max_size=10, poll_interval=0.01) as queue:
        for n in range(5):
            queue.submit(Task(results.append, None, n))

    assert sorted(results) == [0, 1, 2, 3, 4]
    assert queue.stats()["running"] is False


def test_failing_task_does_not_stop_the_drainer() -> None:
    results: list[str] = []

    def explode() -> None:
        raise RuntimeError("bad task")

    limiter = SlidingWindowRateLimiter(1, 0.05)
    queue = DeferredTaskQueue(limiter, max_size=10, poll_interval=0.01)
    queue.submit(Task(results.append, None, "first"))
    queue.submit(Task(explode))
    queue.submit(Task(results.append, None, "last"))

    queue.start()
    try:
        assert queue.wait_until_empty(timeout=5) is True
    finally:
        queue.stop()

    assert results == ["first", "last"]
    stats = queue.stats()
    assert stats["failed"] == 1
    assert stats["executed"] == 2


def test_error_strategy_limiter_queues_instead_of_raising(clock) -> None:
    limiter = SlidingWindowRateLimiter(1, 60, "error", clock=clock)
    queue = DeferredTaskQueue(limiter, max_size=5)

    assert queue.submit(Task(lambda: None)) is True
    assert queue.submit(Task(lambda: None)) is False
    assert limiter.errored_count == 1


@pytest.mark.parametrize(
    "kwargs",
    [{"max_size": 0}, {"poll_interval": 0}, {"poll_interval": -1}],
)
def test_invalid_queue_configuration(clock, kwargs: dict) -> None:
    limiter = SlidingWindowRateLimiter(1, 60, clock=clock)

    with pytest.raises(InvalidConfigurationError):
        DeferredTaskQueue(limiter, **kwargs)
