"""UTC time helpers shared by the cache, persistence and realtime layers."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Millisecond ISO-8601 timestamp with a `Z` suffix.

    Matches what browser clients produce with `Date.toISOString()`.
    """
    moment = moment or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_naive_utc(moment: datetime) -> datetime:
    """Convert to naive UTC for storage in DateTime columns (SQLite drops tzinfo)."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def as_aware_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from the database."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_github_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub's `2024-01-15T10:00:00Z` timestamps; None on absence or bad input."""
    if not value or not isinstance(value, str):
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


__all__ = ["utcnow", "iso_timestamp", "to_naive_utc", "as_aware_utc", "parse_github_datetime"]
