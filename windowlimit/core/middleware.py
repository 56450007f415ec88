"""HTTP middleware for request id propagation.

The middleware:
- Accepts the incoming request id header or generates a UUID
- Stores it as the logging correlation id for the request's lifetime
- Echoes it in the response headers along with the request duration
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from windowlimit.core.config import get_settings
from windowlimit.core.context import reset_correlation_id, set_correlation_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to every request/response pair.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with X-Request-ID and
            X-Request-Duration-ms headers added.
    """

    header_name = get_settings().log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    token = set_correlation_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        reset_correlation_id(token)

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
