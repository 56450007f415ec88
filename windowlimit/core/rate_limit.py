"""Process-wide limiter wiring and the admit-then-execute helper.

This module connects settings, the limiter and tasks for callers that just
want "run this if the budget allows".

Design goals:
- Minimal coupling: callers depend on ``submit``/``get_rate_limiter`` only.
- Swap-friendly: any ``AbstractRateLimiter`` can be passed explicitly.
- The limiter never invokes work itself; ``submit`` sequences the two steps.
"""

from __future__ import annotations

import logging
import threading

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter
from windowlimit.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from windowlimit.core.config import LimiterSettings, get_settings
from windowlimit.core.errors import RateLimitExceededError
from windowlimit.services.task import Task

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, float, str] | None = None
_limiter_lock = threading.Lock()


def build_rate_limiter(limiter_settings: LimiterSettings | None = None) -> SlidingWindowRateLimiter:
    """Build a new limiter from settings.

    Args:
        limiter_settings: Settings to use; defaults to the global settings.

    Raises:
        InvalidConfigurationError: If the settings describe an invalid limiter.
    """

    cfg = limiter_settings or get_settings().limiter
    capacity, window_seconds = cfg.resolved_rate()
    return SlidingWindowRateLimiter(
        capacity=capacity,
        window_seconds=window_seconds,
        strategy=cfg.strategy,
    )


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve its window across calls.
    If the limiter settings change (primarily in tests), it is rebuilt and
    the previous window is discarded.
    """

    global _limiter, _limiter_config

    cfg = get_settings().limiter
    capacity, window_seconds = cfg.resolved_rate()
    config = (capacity, window_seconds, cfg.strategy)

    with _limiter_lock:
        if _limiter is None or _limiter_config != config:
            _limiter = build_rate_limiter(cfg)
            _limiter_config = config
            logger.info(
                "rate_limit.configured",
                extra={
                    "capacity": capacity,
                    "window_s": window_seconds,
                    "strategy": cfg.strategy,
                },
            )
        return _limiter


def reset_rate_limiter() -> None:
    """Forget the cached process-wide limiter."""

    global _limiter, _limiter_config

    with _limiter_lock:
        _limiter = None
        _limiter_config = None


def submit(task: Task, limiter: AbstractRateLimiter | None = None) -> bool:
    """Attempt admission and execute ``task`` when admitted.

    Args:
        task: The task to run.
        limiter: Limiter to consult; defaults to the process-wide one.

    Returns:
        True if the task was admitted and ran, False if it was dropped (or
        had already run).

    Raises:
        RateLimitExceededError: Under the error strategy when the window is full.
        NotificationError: If the task ran but its notify target failed.
    """

    if limiter is None:
        limiter = get_rate_limiter()

    try:
        result = limiter.attempt()
    except RateLimitExceededError as exc:
        logger.warning(
            "rate_limit.task_rejected",
            extra={
                "task_id": task.task_id,
                "capacity": exc.capacity,
                "retry_after_s": exc.retry_after,
            },
        )
        raise

    if not result.admitted:
        logger.info(
            "rate_limit.task_dropped",
            extra={
                "task_id": task.task_id,
                "capacity": result.capacity,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        return False

    logger.debug(
        "rate_limit.task_admitted",
        extra={"task_id": task.task_id, "remaining": result.remaining},
    )
    return task.execute()
