from __future__ import annotations

from windowlimit.api.routes.health import router as health_router
from windowlimit.api.routes.limiter import router as limiter_router

__all__ = ["health_router", "limiter_router"]
