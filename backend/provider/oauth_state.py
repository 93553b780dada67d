"""Time-limited in-memory store for pending OAuth consent flows."""

from __future__ import annotations

import secrets
import time


class OAuthStateStore:
    """Issue and verify one-shot ``state`` values for the consent redirect."""

    def __init__(self, ttl_seconds: int = 600, max_entries: int = 100) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._issued: dict[str, float] = {}

    def issue(self) -> str:
        """Create and remember a new state value."""
        self.cleanup()
        if len(self._issued) >= self._max_entries:
            oldest = min(self._issued, key=self._issued.__getitem__)
            del self._issued[oldest]
        state = secrets.token_urlsafe(32)
        self._issued[state] = time.time()
        return state

    def consume(self, state: str) -> bool:
        """Return True if the state was issued and is still fresh. Each value works once."""
        issued_at = self._issued.pop(state, None)
        if issued_at is None:
            return False
        return time.time() - issued_at <= self._ttl

    def cleanup(self) -> None:
        """Remove expired entries."""
        now = time.time()
        expired = [s for s, t in self._issued.items() if now - t > self._ttl]
        for s in expired:
            del self._issued[s]

    def __len__(self) -> int:
        return len(self._issued)
