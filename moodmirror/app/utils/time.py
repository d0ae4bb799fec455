from __future__ import annotations

from datetime import UTC, date, datetime, tzinfo


def utc_now() -> datetime:
    """Naive UTC timestamp, the format every stored record uses."""

    return datetime.now(UTC).replace(tzinfo=None)


def to_local(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert a stored timestamp to wall-clock time in ``tz``.

    Naive values are treated as UTC. Without ``tz`` the system local zone
    is used, so day and hour buckets follow the user's calendar.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(tz)


def local_day(value: datetime, tz: tzinfo | None = None) -> date:
    return to_local(value, tz).date()
