"""Rate limiting adapters.

The abstract interface lives in ``base``; ``sliding_window`` holds the
in-process implementation used throughout the library.
"""

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter, AdmissionResult, Strategy
from windowlimit.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "AdmissionResult", "SlidingWindowRateLimiter", "Strategy"]
