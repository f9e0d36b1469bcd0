from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from window_guard.adapters.rate_limit.base import AbstractRateLimiter, Admission
from window_guard.core.config import settings
from window_guard.core.rate_limit import enforce_rate_limit, get_rate_limiter
from window_guard.schemas.limits import AdmissionResponse, LimiterStatsResponse

router = APIRouter(prefix="/limits", tags=["Rate limit"])


@router.post("/check", response_model=AdmissionResponse)
async def check_limit(
    admission: Annotated[Admission | None, Depends(enforce_rate_limit)],
) -> AdmissionResponse:
    """Consume one call from the caller's window and report what is left.

    Callers over their limit never reach this body: the dependency raises
    and the client receives 429 with a Retry-After header.
    """
    if admission is None:
        return AdmissionResponse(enforced=False)

    return AdmissionResponse(
        enforced=True,
        limit=admission.limit,
        remaining=admission.remaining,
        reset_at=admission.reset_at,
    )


@router.get("/stats", response_model=LimiterStatsResponse)
async def limiter_stats(
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> LimiterStatsResponse:
    """Return limiter counters without consuming any budget."""
    stats = limiter.stats()
    return LimiterStatsResponse(
        enabled=settings.app.rate_limit_enabled,
        limit=settings.app.rate_limit_requests,
        **stats,
    )
