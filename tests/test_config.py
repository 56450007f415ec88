"""Tests for settings loading."""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from windowlimit.core.config import LimiterSettings, LogSettings, get_settings
from windowlimit.core.errors import InvalidConfigurationError


def test_global_settings_come_from_environment() -> None:
    settings = get_settings()

    assert settings is get_settings()
    assert settings.windowlimit_env == "testing"
    assert settings.limiter.capacity == 3
    assert settings.limiter.window_seconds == 60.0
    assert settings.limiter.strategy == "drop"


def test_limiter_settings_read_prefixed_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMITER_CAPACITY", "25")
    monkeypatch.setenv("LIMITER_WINDOW_SECONDS", "0.75")
    monkeypatch.setenv("LIMITER_STRATEGY", " Error ")

    cfg = LimiterSettings()

    assert cfg.capacity == 25
    assert cfg.window_seconds == 0.75
    assert cfg.strategy == "error"
    assert cfg.resolved_rate() == (25, 0.75)


def test_rate_string_overrides_capacity_and_window(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMITER_RATE", "5/minute")

    assert LimiterSettings().resolved_rate() == (5, 60.0)


def test_bad_rate_string_surfaces_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMITER_RATE", "lots/minute")

    with pytest.raises(InvalidConfigurationError):
        LimiterSettings().resolved_rate()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LIMITER_CAPACITY", "-1"),
        ("LIMITER_WINDOW_SECONDS", "0"),
        ("LIMITER_QUEUE_MAX_SIZE", "0"),
    ],
)
def test_out_of_range_values_fail_validation(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        LimiterSettings()


def test_log_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    cfg = LogSettings()

    assert cfg.level == "INFO"
    assert cfg.format == "json"
    assert cfg.output == "stdout"
    assert cfg.request_id_header == "X-Request-ID"


@pytest.mark.parametrize("value", ["queue", "", "sometimes"])
def test_unknown_strategy_fails_validation(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("LIMITER_STRATEGY", value)

    with pytest.raises(ValidationError, match="strategy"):
        LimiterSettings()


def test_library_import_does_not_load_settings() -> None:
    code = (
        "import sys\n"
        "from windowlimit import SlidingWindowRateLimiter, Task\n"
        "assert SlidingWindowRateLimiter(1, 1).attempt().admitted\n"
        "assert Task(int).execute()\n"
        "loaded = {'windowlimit.core.config', 'pydantic_settings', 'fastapi'} & set(sys.modules)\n"
        "assert not loaded, loaded\n"
    )
    env = {**os.environ, "LIMITER_CAPACITY": "abc", "LOG_MAX_BYTES": "lots"}

    completed = subprocess.run(
        [sys.executable, "-c", code],
        cwd=Path(__file__).resolve().parents[1],
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert completed.returncode == 0, completed.stderr
