"""Time-limited in-memory key-value cache. State is lost on restart."""

from __future__ import annotations

import time
from typing import Any, Protocol


class Cache(Protocol):
    """Key-value cache contract used by the translator."""

    def has(self, key: str) -> bool: ...

    def get(self, key: str, default: Any = None) -> Any: ...

    def put(self, key: str, value: Any, ttl_minutes: int) -> None: ...

    def forget(self, key: str) -> bool: ...

    def flush(self) -> bool: ...


class InMemoryCache:
    """Store values with a per-entry expiry.

    Check-then-write sequences are not atomic across concurrent callers; a
    race only costs a duplicate computation of the same value.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        self._max_entries = max_entries
        # key -> (value, expires_at)
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        self.cleanup()
        return len(self._entries)

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry[1] <= time.monotonic():
            del self._entries[key]
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        if not self.has(key):
            return default
        return self._entries[key][0]

    def put(self, key: str, value: Any, ttl_minutes: int) -> None:
        """Store value for ttl_minutes, evicting the soonest-expiring entry when full."""
        self.cleanup()
        if key not in self._entries and len(self._entries) >= self._max_entries:
            oldest_key = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest_key]
        self._entries[key] = (value, time.monotonic() + ttl_minutes * 60)

    def forget(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def flush(self) -> bool:
        """Remove every entry."""
        self._entries.clear()
        return True

    def cleanup(self) -> None:
        """Remove expired entries."""
        now = time.monotonic()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
