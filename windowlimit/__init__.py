"""In-process sliding-window rate limiting.

Usage:
    >>> from windowlimit import SlidingWindowRateLimiter, Task, TimeUnit, per
    >>> limiter = SlidingWindowRateLimiter(5, per(1, TimeUnit.MINUTE), "drop")
    >>> task = Task(pow, None, 7, 2)
    >>> if limiter.attempt():
    ...     task.execute()
"""

from windowlimit.adapters.rate_limit import (
    AbstractRateLimiter,
    AdmissionResult,
    SlidingWindowRateLimiter,
    Strategy,
)
from windowlimit.core.durations import TimeUnit, parse_rate, per, to_seconds
from windowlimit.core.errors import (
    InvalidConfigurationError,
    InvalidJobError,
    NotificationError,
    QueueFullError,
    RateLimitExceededError,
    WindowLimitError,
)
from windowlimit.services.deferred import DeferredTaskQueue
from windowlimit.services.task import Notifier, Task

__version__ = "0.1.0"

__all__ = [
    "AbstractRateLimiter",
    "AdmissionResult",
    "DeferredTaskQueue",
    "InvalidConfigurationError",
    "InvalidJobError",
    "Notifier",
    "NotificationError",
    "QueueFullError",
    "RateLimitExceededError",
    "SlidingWindowRateLimiter",
    "Strategy",
    "Task",
    "TimeUnit",
    "WindowLimitError",
    "parse_rate",
    "per",
    "to_seconds",
]
