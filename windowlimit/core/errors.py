"""Library exception types.

All errors carry a stable machine-readable code, a human message, and
optional structured details so callers (and the HTTP layer) can handle and
log them consistently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional; each error populates the ones relevant to it.
    """

    capacity: int
    window_seconds: float
    retry_after: float
    strategy: str
    max_size: int
    task_id: str
    field: str
    value: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for library failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class WindowLimitError(AppError):
    """Root of every error raised by windowlimit."""


class InvalidConfigurationError(WindowLimitError):
    """Raised when a limiter, duration or rate is configured with invalid values."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(code="invalid_configuration", message=message, details=details)


class RateLimitExceededError(WindowLimitError):
    """Raised under the error strategy when an attempt finds the window full."""

    def __init__(self, capacity: int, window_seconds: float, retry_after: float) -> None:
        super().__init__(
            code="rate_limit_exceeded",
            message=f"Rate limit of {capacity} per {window_seconds:g} sec exceeded",
            details={
                "capacity": capacity,
                "window_seconds": window_seconds,
                "retry_after": retry_after,
            },
        )

    @property
    def capacity(self) -> int:
        return self.details["capacity"]  # type: ignore[index]

    @property
    def window_seconds(self) -> float:
        return self.details["window_seconds"]  # type: ignore[index]

    @property
    def retry_after(self) -> float:
        return self.details["retry_after"]  # type: ignore[index]


class InvalidJobError(WindowLimitError):
    """Raised when a Task is built without a usable operation or notify target."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(code="invalid_job", message=message, details=details)


class NotificationError(WindowLimitError):
    """Raised when a task ran but its notify target failed.

    The task is already marked as run when this is raised; the original
    exception is available as ``__cause__``.
    """

    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(
            code="notification_failed",
            message=message,
            details={"task_id": task_id},
        )


class QueueFullError(WindowLimitError):
    """Raised when the deferred queue is at its bound and cannot take a task."""

    def __init__(self, max_size: int) -> None:
        super().__init__(
            code="queue_full",
            message=f"Deferred queue is full ({max_size} pending tasks)",
            details={"max_size": max_size},
        )
