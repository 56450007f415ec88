"""Tests for the process-wide limiter and the admit-then-execute helper."""

import pytest

from windowlimit.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from windowlimit.core import rate_limit
from windowlimit.core.config import LimiterSettings, get_settings
from windowlimit.core.errors import RateLimitExceededError
from windowlimit.core.rate_limit import build_rate_limiter, get_rate_limiter, reset_rate_limiter, submit
from windowlimit.services.task import Task


@pytest.fixture(autouse=True)
def _fresh_limiter():
    reset_rate_limiter()
    yield
    reset_rate_limiter()


def test_process_wide_limiter_is_cached() -> None:
    first = get_rate_limiter()
    second = get_rate_limiter()

    assert first is second
    assert first.stats()["capacity"] == 3


def test_limiter_is_rebuilt_when_settings_change(monkeypatch: pytest.MonkeyPatch) -> None:
    original = get_rate_limiter()

    monkeypatch.setattr(get_settings(), "limiter", LimiterSettings(capacity=7, window_seconds=5, strategy="error"))
    rebuilt = get_rate_limiter()

    assert rebuilt is not original
    assert rebuilt.stats()["capacity"] == 7
    assert rebuilt.stats()["strategy"] == "error"


def test_build_rate_limiter_honors_rate_string() -> None:
    limiter = build_rate_limiter(LimiterSettings(rate="2/1.5s"))

    assert limiter.capacity == 2
    assert limiter.window_seconds == 1.5


def test_submit_executes_admitted_tasks_and_drops_the_rest(clock, notifier) -> None:
    limiter = SlidingWindowRateLimiter(2, 60, "drop", clock=clock)
    tasks = [Task(lambda n: n * 10, notifier, n) for n in range(4)]

    outcomes = [submit(task, limiter) for task in tasks]

    assert outcomes == [True, True, False, False]
    assert notifier.calls == [0, 10]
    assert [task.has_run for task in tasks] == [True, True, False, False]
    assert limiter.dropped_count == 2


def test_submit_propagates_rate_limit_error(clock) -> None:
    limiter = SlidingWindowRateLimiter(1, 60, "error", clock=clock)
    submit(Task(lambda: None), limiter)
    blocked = Task(lambda: None)

    with pytest.raises(RateLimitExceededError):
        submit(blocked, limiter)

    assert blocked.has_run is False


def test_submit_uses_process_wide_limiter_by_default() -> None:
    tasks = [Task(lambda: None) for _ in range(4)]

    outcomes = [submit(task) for task in tasks]

    # conftest configures capacity=3 with the drop strategy
    assert outcomes == [True, True, True, False]
    assert rate_limit.get_rate_limiter().stats()["dropped_count"] == 1


def test_submit_consumes_a_slot_even_for_tasks_that_already_ran(clock) -> None:
    limiter = SlidingWindowRateLimiter(5, 60, clock=clock)
    task = Task(lambda: None)

    assert submit(task, limiter) is True
    assert submit(task, limiter) is False
    assert limiter.used_capacity() == 2
