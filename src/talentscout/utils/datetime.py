"""Datetime helpers. All timestamps are timezone-aware UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def iso_to_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string (with optional trailing Z)."""
    if not value:
        return None
    try:
        return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (ValueError, TypeError):
        return None


def epoch_to_datetime(value: int | float | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def days_since(value: datetime | None, now: datetime | None = None) -> float | None:
    """Days elapsed since ``value``, or None if unknown."""
    if value is None:
        return None
    now = now or utc_now()
    return (now - ensure_aware(value)).total_seconds() / 86400


def ensure_isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_aware(value).isoformat()


__all__ = [
    "utc_now",
    "ensure_aware",
    "iso_to_datetime",
    "epoch_to_datetime",
    "days_since",
    "ensure_isoformat",
]
