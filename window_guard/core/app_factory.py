"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the single rate limiter instance for the app's lifetime.
"""

from __future__ import annotations

from fastapi import FastAPI

from window_guard.adapters.rate_limit.base import AbstractRateLimiter
from window_guard.api.routes import health_router, limits_router
from window_guard.core.config import settings
from window_guard.core.exception_handlers import setup_exception_handlers
from window_guard.core.logging import configure_logging
from window_guard.core.middleware import request_id_middleware
from window_guard.core.openapi import apply_openapi_customizations
from window_guard.core.rate_limit import build_rate_limiter


def create_app(rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to inject (tests); built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Window Guard",
        description=(
            "In-memory fixed-window rate limiter with a bounded token store. "
            "Callers over their limit receive 429 with a Retry-After header."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings.app)

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
