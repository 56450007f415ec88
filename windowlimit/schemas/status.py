"""Pydantic schemas for limiter status and attempt responses."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field


class LimiterStatus(BaseModel):
    """Snapshot of a limiter's configuration, usage and lifetime counters."""

    capacity: int = Field(..., description="Maximum admissions per window.")
    window_seconds: float = Field(..., description="Rolling window size in seconds.")
    strategy: str = Field(..., description="Overflow strategy: 'drop' or 'error'.")
    used: int = Field(..., description="Admissions inside the current window.")
    remaining: int = Field(..., description="Free slots in the current window.")
    at_capacity: bool = Field(..., description="Whether the next attempt would be refused.")
    retry_after_seconds: float | None = Field(
        None,
        description="Seconds until a slot frees up; null when a slot is free or never will be.",
    )
    total_attempts: int = Field(..., description="Attempts since the limiter was created.")
    dropped_count: int = Field(..., description="Attempts dropped under the drop strategy.")
    errored_count: int = Field(..., description="Attempts refused under the error strategy.")

    @classmethod
    def from_stats(cls, stats: dict[str, Any]) -> "LimiterStatus":
        retry_after = stats.get("retry_after_seconds")
        if retry_after is not None and (retry_after <= 0 or math.isinf(retry_after)):
            retry_after = None
        return cls(
            capacity=stats["capacity"],
            window_seconds=stats["window_seconds"],
            strategy=stats["strategy"],
            used=stats["used"],
            remaining=max(0, stats["capacity"] - stats["used"]),
            at_capacity=stats["at_capacity"],
            retry_after_seconds=retry_after,
            total_attempts=stats["total_attempts"],
            dropped_count=stats["dropped_count"],
            errored_count=stats["errored_count"],
        )


class AttemptResponse(BaseModel):
    """Slot consumed through the HTTP surface; refusals are reported as 429."""

    capacity: int = Field(..., description="Maximum admissions per window.")
    used: int = Field(..., description="Admissions inside the window after this one.")
    remaining: int = Field(..., description="Free slots left in the window.")
