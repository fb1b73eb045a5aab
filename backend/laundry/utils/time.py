"""UTC helpers.

All times are UTC. Persisted timestamps are ISO 8601 strings with
microsecond precision and a Z suffix, so they sort lexicographically.
Components take a ``Clock`` instead of reading the wall clock so tests
can move time by hand.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(dt: datetime) -> datetime:
    # Naive datetimes are taken to be UTC already.
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """``2026-03-02T09:30:00.000000Z`` style string for ``dt``."""
    return _as_utc(dt).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp; also accepts offsets and naive values."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(value))


def now_timestamp(clock: Clock = utc_now) -> str:
    """Current time from ``clock`` formatted for persistence."""
    return format_timestamp(clock())
