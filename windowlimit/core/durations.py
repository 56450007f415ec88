"""Window duration helpers.

Windows are plain float seconds everywhere in the library. This module turns
human-friendly inputs (units, ``timedelta`` objects, rate strings such as
``"5/minute"``) into that representation.

Example:
    >>> per(5, TimeUnit.MINUTE)
    300.0
    >>> parse_rate("30/hour")
    (30, 3600.0)
"""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum

from windowlimit.core.errors import InvalidConfigurationError


class TimeUnit(float, Enum):
    """Units of time, valued in seconds."""

    SECOND = 1.0
    MINUTE = 60.0
    HOUR = 60.0 * 60
    DAY = 60.0 * 60 * 24
    WEEK = 60.0 * 60 * 24 * 7
    MONTH = 60.0 * 60 * 24 * 30
    YEAR = 60.0 * 60 * 24 * 365


_UNIT_ALIASES = {
    "s": TimeUnit.SECOND,
    "sec": TimeUnit.SECOND,
    "second": TimeUnit.SECOND,
    "m": TimeUnit.MINUTE,
    "min": TimeUnit.MINUTE,
    "minute": TimeUnit.MINUTE,
    "h": TimeUnit.HOUR,
    "hr": TimeUnit.HOUR,
    "hour": TimeUnit.HOUR,
    "d": TimeUnit.DAY,
    "day": TimeUnit.DAY,
    "week": TimeUnit.WEEK,
    "month": TimeUnit.MONTH,
    "year": TimeUnit.YEAR,
}

_RATE_RE = re.compile(r"^\s*(\d+)\s*/\s*(?:(\d+(?:\.\d+)?)\s*)?([a-zA-Z]+)\s*$")


def per(amount: float = 1, unit: TimeUnit = TimeUnit.SECOND) -> float:
    """Return ``amount`` units of time as seconds."""

    return float(amount) * float(unit.value)


def to_seconds(value: float | int | timedelta) -> float:
    """Coerce a window expressed as seconds or ``timedelta`` into float seconds.

    Args:
        value: Number of seconds, a ``timedelta`` or a ``TimeUnit``.

    Returns:
        Window length in seconds, with sub-second precision preserved.

    Raises:
        InvalidConfigurationError: If the value is not a duration.
    """

    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, TimeUnit):
        return float(value.value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigurationError(
            f"Window must be a number of seconds or a timedelta, got {value!r}",
            details={"field": "window_seconds", "value": repr(value)},
        )
    return float(value)


def parse_rate(spec: str) -> tuple[int, float]:
    """Parse a rate string into ``(capacity, window_seconds)``.

    Accepted forms: ``"5/second"``, ``"300/min"``, ``"10/hr"`` and
    ``"3/1.5s"`` (an explicit multiple of a unit).

    Raises:
        InvalidConfigurationError: If the string is malformed or names an
            unknown unit.
    """

    match = _RATE_RE.match(spec)
    if not match:
        raise InvalidConfigurationError(
            f"Invalid rate spec: {spec!r}. Expected format: '5/second', '300/minute', etc.",
            details={"field": "rate", "value": spec},
        )

    limit_str, multiple_str, unit_str = match.groups()
    unit = _UNIT_ALIASES.get(unit_str.lower())
    if unit is None:
        raise InvalidConfigurationError(
            f"Unknown duration unit: {unit_str!r}",
            details={"field": "rate", "value": spec},
        )

    window = per(float(multiple_str) if multiple_str else 1, unit)
    if window <= 0:
        raise InvalidConfigurationError(
            f"Rate window must be positive: {spec!r}",
            details={"field": "rate", "value": spec},
        )
    return int(limit_str), window
