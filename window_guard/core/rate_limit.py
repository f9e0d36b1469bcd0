"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Explicit ownership: the limiter is built once by the app factory and lives
  on ``app.state``; nothing here keeps module-level limiter state.
- Swap-friendly: routes only see ``AbstractRateLimiter``.
- Rejections travel as ``RateLimitAppError`` and are turned into 429
  responses by the global exception handler.

Token strategy:
- ``api_key:<X-API-Key>`` when the header is present.
- Otherwise ``ip:<client host>``.
- No identifiable client at all falls into the shared global bucket.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, Request

from window_guard.adapters.rate_limit.base import AbstractRateLimiter, Admission
from window_guard.adapters.rate_limit.in_memory import configure
from window_guard.adapters.rate_limit.store import hash_token
from window_guard.core.config import AppSettings, settings
from window_guard.core.errors import RateLimitAppError, ValidationAppError

logger = logging.getLogger(__name__)

MAX_API_KEY_LENGTH = 256


def build_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Construct the process-wide limiter from settings.

    Args:
        app_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractRateLimiter: Freshly configured limiter with an empty store.
    """

    cfg = app_settings or settings.app
    limiter = configure(
        window_duration_ms=cfg.rate_limit_window_ms,
        max_tracked_tokens=cfg.rate_limit_max_tracked_tokens,
    )
    logger.info(
        "rate_limit.configured",
        extra={
            "window_ms": cfg.rate_limit_window_ms,
            "max_tracked_tokens": cfg.rate_limit_max_tracked_tokens,
            "limit": cfg.rate_limit_requests,
        },
    )
    return limiter


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def build_rate_limit_key(request: Request, x_api_key: str | None) -> str:
    """Build the limiter token for the current request.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced token, or "" when the caller cannot be identified.

    Raises:
        ValidationAppError: If X-API-Key is present but blank or oversized.
    """

    if x_api_key is not None:
        if not x_api_key.strip() or len(x_api_key) > MAX_API_KEY_LENGTH:
            raise ValidationAppError(
                code="invalid_caller_key",
                message="X-API-Key must be a non-blank value of at most 256 characters",
                details={"hint": "Omit the header to be limited by client address instead"},
            )

        return f"api_key:{x_api_key}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return ""


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> Admission | None:
    """FastAPI dependency enforcing the configured limit.

    Args:
        request: FastAPI request.
        x_api_key: API key from X-API-Key header.

    Returns:
        The Admission for this call, or None when rate limiting is disabled.

    Raises:
        RateLimitAppError: When the caller has used up its window.
        ValidationAppError: When the X-API-Key header is malformed.
    """

    if not settings.app.rate_limit_enabled:
        return None

    limiter = get_rate_limiter(request)
    key = build_rate_limit_key(request, x_api_key)
    key_type = "api_key" if x_api_key else ("ip" if key else "global")
    key_hash = hash_token(key) if key else None

    result = limiter.check(settings.app.rate_limit_requests, key)
    if isinstance(result, Admission):
        logger.info(
            "rate_limit.admitted",
            extra={
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
        },
    )

    headers: dict[str, str] = {"Retry-After": str(result.retry_after_seconds)}
    if settings.app.rate_limit_include_headers:
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(result.reset_at)

    raise RateLimitAppError(
        code=result.code,
        message="Rate limit exceeded. Try again later.",
        details={
            "http_status": result.status_code,
            "retry_after": result.retry_after_seconds,
            "limit": result.limit,
        },
        retry_after_seconds=result.retry_after_seconds,
        headers=headers,
    )
