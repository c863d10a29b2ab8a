"""Month/period helpers for the monthly reward pipeline."""

from __future__ import annotations

from datetime import datetime, timezone


def get_previous_month(now: datetime | None = None) -> tuple[int, int]:
    """(month, year) of the month before ``now``. January rolls back to December."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.month == 1:
        return 12, now.year - 1
    return now.month - 1, now.year


def as_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
