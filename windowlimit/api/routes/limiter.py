"""Limiter monitoring endpoints.

``GET /limiter/status`` reports usage without consuming budget.
``POST /limiter/attempt`` consumes one slot, for callers that gate remote
work on this process's limiter.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter
from windowlimit.core.errors import RateLimitExceededError
from windowlimit.core.rate_limit import get_rate_limiter
from windowlimit.schemas.status import AttemptResponse, LimiterStatus

router = APIRouter(tags=["Limiter"])


def get_app_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter bound to the app, or the process-wide one."""

    limiter = getattr(request.app.state, "limiter", None)
    return limiter if limiter is not None else get_rate_limiter()


LimiterDep = Annotated[AbstractRateLimiter, Depends(get_app_limiter)]


@router.get("/limiter/status", response_model=LimiterStatus)
def limiter_status(limiter: LimiterDep) -> LimiterStatus:
    """Report capacity, current usage, strategy and lifetime counters."""

    return LimiterStatus.from_stats(limiter.stats())


@router.post("/limiter/attempt", response_model=AttemptResponse)
def limiter_attempt(limiter: LimiterDep) -> AttemptResponse:
    """Consume one slot from the limiter.

    Raises:
        RateLimitExceededError: When the window is full, whatever the
            strategy; the exception handler turns it into a 429.
    """

    result = limiter.attempt()
    if not result.admitted:
        stats = limiter.stats()
        raise RateLimitExceededError(
            result.capacity,
            stats["window_seconds"],
            result.retry_after_seconds or 0.0,
        )

    return AttemptResponse(
        capacity=result.capacity,
        used=result.used,
        remaining=result.remaining,
    )
