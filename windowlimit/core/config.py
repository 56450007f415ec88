"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- WINDOWLIMIT_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from windowlimit.adapters.rate_limit.base import Strategy
from windowlimit.core.errors import InvalidConfigurationError


# Determine which environment to load (default: development)
WINDOWLIMIT_ENV = os.getenv("WINDOWLIMIT_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(WINDOWLIMIT_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment.

    Static type checkers treat fields as constructor arguments, which is not
    how BaseSettings is meant to be used.
    """

    return LimiterSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class LimiterSettings(BaseSettings):
    """Defaults for the process-wide rate limiter and deferred queue."""

    capacity: int = Field(
        10,
        description="Maximum number of admissions per rolling window",
        ge=0,
    )
    window_seconds: float = Field(
        60.0,
        description="Rolling window size in seconds (sub-second values allowed)",
        gt=0,
    )
    strategy: str = Field(
        "drop",
        description="Overflow strategy: 'drop' or 'error'",
    )
    rate: str | None = Field(
        None,
        description="Optional rate string such as '5/minute'; overrides capacity/window",
    )
    queue_max_size: int = Field(
        100,
        description="Maximum number of tasks held by the deferred queue",
        ge=1,
    )
    drain_poll_seconds: float = Field(
        0.5,
        description="Upper bound on how long the drainer sleeps between admission retries",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )

    @field_validator("strategy")
    @classmethod
    def _validate_strategy(cls, value: str) -> str:
        try:
            return Strategy.parse(value).value
        except InvalidConfigurationError as exc:
            raise ValueError(exc.message) from exc

    def resolved_rate(self) -> tuple[int, float]:
        """Return (capacity, window_seconds), honoring `rate` when set."""

        if self.rate:
            from windowlimit.core.durations import parse_rate

            return parse_rate(self.rate)
        return self.capacity, self.window_seconds


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="HTTP header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Loads from the appropriate .env.{WINDOWLIMIT_ENV} file when present and
    raises validation errors when first loaded if values are malformed.
    """

    windowlimit_env: str = WINDOWLIMIT_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use.

    Raises:
        pydantic.ValidationError: If environment values are malformed.
    """

    # Nested settings are created via default_factory so env loading works.
    return Settings()
