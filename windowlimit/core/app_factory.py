"""Application factory for the monitoring HTTP app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated apps around their own limiter.
"""

from __future__ import annotations

from fastapi import FastAPI

from windowlimit.adapters.rate_limit.base import AbstractRateLimiter
from windowlimit.api.routes import health_router, limiter_router
from windowlimit.core.config import get_settings
from windowlimit.core.exception_handlers import setup_exception_handlers
from windowlimit.core.logging import configure_logging
from windowlimit.core.middleware import request_id_middleware


def create_app(
    limiter: AbstractRateLimiter | None = None,
    *,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        limiter: Limiter served by the app. Defaults to the process-wide one
            built from settings.
        configure_logs: Install the JSON logging configuration.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(get_settings().log)

    app = FastAPI(
        title="windowlimit",
        description=(
            "Monitoring surface for an in-process sliding-window rate limiter: "
            "health, current usage and lifetime counters, and a slot-consuming "
            "attempt endpoint that answers 429 when the window is full."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.limiter = limiter

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(limiter_router, prefix="/v1")
    app.include_router(health_router)

    return app
