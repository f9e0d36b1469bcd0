"""Pydantic schemas for rate limit responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AdmissionResponse(BaseModel):
    """Result of consuming one unit of the caller's window."""

    admitted: bool = Field(True, description="Always true; rejections return HTTP 429.")
    enforced: bool = Field(
        ..., description="False when rate limiting is disabled by configuration."
    )
    limit: int | None = Field(
        default=None, description="Calls allowed per window for this caller."
    )
    remaining: int | None = Field(
        default=None, description="Calls left in the current window."
    )
    reset_at: int | None = Field(
        default=None, description="UNIX epoch seconds at which the window resets."
    )


class LimiterStatsResponse(BaseModel):
    """Aggregate limiter counters (no caller identities)."""

    enabled: bool
    limit: int = Field(..., description="Configured calls per window.")
    window_duration_ms: int
    max_tracked_tokens: int
    entries: int = Field(..., description="Tokens currently tracked.")
    evictions: int = Field(..., description="Entries dropped to stay within capacity.")
    admitted: int
    rejected: int
