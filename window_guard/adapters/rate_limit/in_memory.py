"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole read-decide-write sequence.
- Memory is bounded by ``max_tracked_tokens`` (see ``WindowCounterStore``).
"""

from __future__ import annotations

import math
import threading
import time
from typing import Any, Callable

from window_guard.adapters.rate_limit.base import (
    GLOBAL_TOKEN,
    AbstractRateLimiter,
    Admission,
    CheckResult,
    RateLimitExceeded,
)
from window_guard.adapters.rate_limit.store import WindowCounterStore, WindowEntry


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per token.

    A token's window starts at its first check and lasts
    ``window_duration_ms``. Every admitted call inside it shares one counter,
    so a burst right before the reset followed by another right after can
    reach twice the limit within a short span.

    The limit is not stored: each call passes the limit in force for it and
    only counts are tracked.
    """

    def __init__(
        self,
        *,
        window_duration_ms: int,
        max_tracked_tokens: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            window_duration_ms: Length of a counting window in milliseconds.
            max_tracked_tokens: Maximum number of tokens tracked at once.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If window_duration_ms or max_tracked_tokens are invalid.
        """
        if window_duration_ms < 1:
            raise ValueError("window_duration_ms must be >= 1")

        self._window_duration_ms = window_duration_ms
        self._store = WindowCounterStore(max_tracked_tokens)
        self._clock = clock
        self._lock = threading.Lock()
        self._admitted = 0
        self._rejected = 0

    @property
    def window_duration_ms(self) -> int:
        return self._window_duration_ms

    @property
    def store(self) -> WindowCounterStore:
        return self._store

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _current_entry(self, token: str, now_ms: int) -> WindowEntry:
        """Return the live window for ``token``, starting a new one if needed.

        A fresh entry is not stored here; it only reaches the store once a
        call is admitted.
        """
        entry = self._store.get(token)
        if entry is None or now_ms >= entry.reset_at_ms:
            entry = WindowEntry(count=0, reset_at_ms=now_ms + self._window_duration_ms)
        return entry

    def check(self, limit: int, token: str | None) -> CheckResult:
        """Count one call for ``token`` if it fits under ``limit``.

        Rejected calls are not counted, so hammering past the limit does not
        push the reset further out.

        Args:
            limit: Checks allowed per window for this call.
            token: Caller identity; ``None`` or empty shares the global bucket.

        Returns:
            Admission or RateLimitExceeded.

        Raises:
            ValueError: If limit is not positive.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")

        key = token or GLOBAL_TOKEN

        with self._lock:
            now_ms = self._now_ms()
            entry = self._current_entry(key, now_ms)

            if entry.count >= limit:
                self._rejected += 1
                retry_after = max(0, math.ceil((entry.reset_at_ms - now_ms) / 1000))
                return RateLimitExceeded(
                    retry_after_seconds=retry_after,
                    limit=limit,
                    reset_at_ms=entry.reset_at_ms,
                )

            entry.count += 1
            self._store.put(key, entry)
            self._admitted += 1
            return Admission(
                limit=limit,
                remaining=limit - entry.count,
                reset_at_ms=entry.reset_at_ms,
            )

    def stats(self) -> dict[str, Any]:
        """Return limiter counters without exposing tokens."""

        with self._lock:
            return {
                "window_duration_ms": self._window_duration_ms,
                "max_tracked_tokens": self._store.max_tracked_tokens,
                "entries": self._store.size(),
                "evictions": self._store.evictions,
                "admitted": self._admitted,
                "rejected": self._rejected,
            }


def configure(
    window_duration_ms: int,
    max_tracked_tokens: int,
    *,
    clock: Callable[[], float] = time.time,
) -> InMemoryFixedWindowRateLimiter:
    """Build a limiter owning its own token store.

    Intended to be called once at startup; the result is handed to whatever
    needs it rather than kept in module state.
    """

    return InMemoryFixedWindowRateLimiter(
        window_duration_ms=window_duration_ms,
        max_tracked_tokens=max_tracked_tokens,
        clock=clock,
    )
