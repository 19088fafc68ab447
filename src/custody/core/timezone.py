"""Timezone utilities. All persisted timestamps are UTC."""

from datetime import datetime
from typing import Callable, Optional

import pytz
from dateutil import parser as date_parser

UTC = pytz.utc

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    """Return current time in UTC."""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Convert a datetime to UTC."""
    if dt.tzinfo is None:
        # Naive values come back from SQLite; they were written as UTC
        return UTC.localize(dt)
    return dt.astimezone(UTC)


def optional_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to UTC, passing None through."""
    return to_utc(dt) if dt is not None else None


def parse_datetime_utc(value: str) -> datetime:
    """
    Parse a datetime string and return it in UTC.

    If no timezone is provided in the string, assumes UTC.
    """
    return to_utc(date_parser.parse(value))


def from_unix_millis(value: int) -> datetime:
    """Convert a unix timestamp in milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(value / 1000, UTC)
