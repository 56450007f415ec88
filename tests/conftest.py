"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any windowlimit import so the settings
settings are loaded from predictable values instead of a local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["WINDOWLIMIT_ENV"] = "testing"

os.environ.setdefault("LIMITER_CAPACITY", "3")
os.environ.setdefault("LIMITER_WINDOW_SECONDS", "60")
os.environ.setdefault("LIMITER_STRATEGY", "drop")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402


class FakeClock:
    """Deterministic clock injected into limiters."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def set(self, value: float) -> None:
        self.current = value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class RecordingNotifier:
    """Notify target that remembers every value it receives."""

    def __init__(self) -> None:
        self.calls: list = []

    def notify(self, value) -> None:
        self.calls.append(value)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
