"""Datetime helpers: timezone-aware now, ISO output."""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO 8601 for JSON serialization."""
    if dt is None:
        return None
    return ensure_aware(dt).isoformat()
