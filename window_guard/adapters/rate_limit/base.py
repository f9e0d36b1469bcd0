"""Rate limiter interfaces and result types.

The API should depend on this abstraction (not the concrete implementation)
so the storage backend can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

GLOBAL_TOKEN = "global"


@dataclass(frozen=True)
class Admission:
    """Outcome of a check that lets the operation proceed.

    Attributes:
        limit: Checks allowed per window for the call that produced this result.
        remaining: Checks left in the current window (never negative).
        reset_at_ms: Epoch milliseconds at which the current window ends.
    """

    limit: int
    remaining: int
    reset_at_ms: int
    admitted: bool = True

    @property
    def reset_at(self) -> int:
        """Window end in whole UNIX epoch seconds (rounded up)."""
        return -(-self.reset_at_ms // 1000)


@dataclass(frozen=True)
class RateLimitExceeded:
    """Outcome of a check that rejects the operation.

    This is an expected result, not a fault: the caller gets retry guidance
    and the HTTP boundary decides how to surface it.

    Attributes:
        retry_after_seconds: Whole seconds until the window resets (>= 0).
        limit: Limit that was in force for the rejected call.
    """

    retry_after_seconds: int
    limit: int
    reset_at_ms: int
    admitted: bool = False
    status_code: int = 429
    code: str = "rate_limit_exceeded"

    @property
    def reset_at(self) -> int:
        """Window end in whole UNIX epoch seconds, as sent in X-RateLimit-Reset."""
        return -(-self.reset_at_ms // 1000)


CheckResult = Admission | RateLimitExceeded


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, limit: int, token: str | None) -> CheckResult:
        """Count one operation for ``token`` against ``limit``.

        Args:
            limit: Checks allowed per window for this call (>= 1).
            token: Caller identity. ``None`` or empty uses the shared bucket.

        Returns:
            Admission when allowed, RateLimitExceeded otherwise.

        Raises:
            ValueError: If ``limit`` is not positive.
        """
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return lightweight counters without exposing tokens."""
        raise NotImplementedError
