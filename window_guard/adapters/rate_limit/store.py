"""Bounded token store backing the fixed-window limiter.

Keeps one ``WindowEntry`` per tracked token and never holds more than
``max_tracked_tokens`` of them. When an insert overflows the store, the entry
whose window ends soonest is dropped: losing it only resets that caller to a
fresh window, so the limiter errs towards admitting rather than rejecting.

Not thread-safe on its own; the owning limiter serializes access.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class WindowEntry:
    """Counting window for a single token."""

    count: int
    reset_at_ms: int


def hash_token(token: str) -> str:
    """Hash a token for logging without exposing caller identity."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


class WindowCounterStore:
    """Token -> WindowEntry map with a hard capacity bound.

    Attributes:
        max_tracked_tokens: Maximum number of distinct tokens held at once.
    """

    def __init__(self, max_tracked_tokens: int) -> None:
        if max_tracked_tokens < 1:
            raise ValueError("max_tracked_tokens must be >= 1")

        self._max_tracked_tokens = max_tracked_tokens
        self._entries: dict[str, WindowEntry] = {}
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"WindowCounterStore(max_tracked_tokens={self._max_tracked_tokens}, "
            f"size={len(self._entries)}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    @property
    def max_tracked_tokens(self) -> int:
        return self._max_tracked_tokens

    @property
    def evictions(self) -> int:
        return self._evictions

    def size(self) -> int:
        """Return the number of tracked tokens."""
        return len(self._entries)

    def get(self, token: str) -> WindowEntry | None:
        """Look up the entry for ``token`` without mutating anything."""
        return self._entries.get(token)

    def put(self, token: str, entry: WindowEntry) -> str | None:
        """Insert or overwrite the entry for ``token``.

        If the insert pushes the store past capacity, exactly one other entry
        is evicted: the one with the smallest ``reset_at_ms``, ties going to
        the lexicographically smallest token.

        Args:
            token: Store key.
            entry: Window state to associate with the key.

        Returns:
            The evicted token, or None when nothing was evicted.
        """

        self._entries[token] = entry
        if len(self._entries) <= self._max_tracked_tokens:
            return None
        return self._evict_one(exclude=token)

    def _evict_one(self, *, exclude: str) -> str | None:
        victim: str | None = None
        victim_key: tuple[int, str] | None = None

        # Linear scan; only runs on the overflow path.
        for token, entry in self._entries.items():
            if token == exclude:
                continue
            key = (entry.reset_at_ms, token)
            if victim_key is None or key < victim_key:
                victim, victim_key = token, key

        if victim is None:
            return None

        del self._entries[victim]
        self._evictions += 1
        logger.debug(
            "rate_limit.evicted",
            extra={
                "key_hash": hash_token(victim),
                "reset_at_ms": victim_key[0] if victim_key else None,
                "size": len(self._entries),
            },
        )
        return victim
