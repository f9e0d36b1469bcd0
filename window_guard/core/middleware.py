"""HTTP middleware for request correlation.

Every response, including the generic 500 for an unhandled error, leaves with
the request id header and ``X-Request-Duration-ms``. The id stays in context
until the response has been built, so error bodies and logs carry it too.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from window_guard.core.config import settings
from window_guard.core.exception_handlers import general_exception_handler
from window_guard.core.logging import clear_request_id, set_request_id


def _resolve_request_id(request: Request, header_name: str) -> str:
    """Reuse the caller's correlation id or mint a new one."""
    return request.headers.get(header_name) or str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag the request/response pair with a correlation id.

    Unhandled exceptions are turned into the generic 500 here, while the id
    is still set, instead of in Starlette's outermost error middleware where
    the context has already been cleared.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response carrying the request id and duration headers.
    """

    header_name = settings.log.request_id_header
    request_id = _resolve_request_id(request, header_name)
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        response = await general_exception_handler(request, exc)
    finally:
        clear_request_id()

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{elapsed_ms:.2f}")
    return response
