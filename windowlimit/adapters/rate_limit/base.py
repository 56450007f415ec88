"""Rate limiter interfaces.

Callers (the integration helpers, the deferred queue, the HTTP layer) depend
on this abstraction rather than the concrete sliding-window implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from windowlimit.core.errors import InvalidConfigurationError


class Strategy(str, Enum):
    """What an attempt does when the window is already full."""

    DROP = "drop"
    ERROR = "error"

    @classmethod
    def parse(cls, value: "Strategy | str") -> "Strategy":
        """Normalize a strategy given as enum member or name.

        Raises:
            InvalidConfigurationError: If the value is not a known strategy.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(member.value for member in cls)
        raise InvalidConfigurationError(
            f"Strategy {value!r} is not one of the allowed strategies ({allowed})",
            details={"field": "strategy", "value": repr(value)},
        )


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of a single admission attempt.

    Attributes:
        admitted: Whether the attempt was recorded inside the window.
        capacity: Max admissions per window.
        used: Admissions inside the window after this attempt.
        remaining: Free slots left in the window.
        retry_after_seconds: Time until the oldest admission leaves the
            window, when not admitted.
    """

    admitted: bool
    capacity: int
    used: int
    remaining: int
    retry_after_seconds: float | None = None

    def __bool__(self) -> bool:
        return self.admitted


class AbstractRateLimiter(ABC):
    """Interface for in-process rate limiters."""

    @abstractmethod
    def attempt(self) -> AdmissionResult:
        """Count one attempt and record an admission if the window has room.

        Returns:
            AdmissionResult describing whether the attempt was admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def is_at_capacity(self) -> bool:
        """Return True when no admission is currently possible."""
        raise NotImplementedError

    @abstractmethod
    def used_capacity(self) -> int:
        """Return the number of admissions inside the current window."""
        raise NotImplementedError

    @abstractmethod
    def seconds_until_available(self) -> float:
        """Return how long until the next admission could succeed."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return a snapshot of configuration, usage and lifetime counters."""
        raise NotImplementedError
