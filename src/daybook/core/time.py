"""Calendar clock and date helpers.

Provides the single server-anchored notion of "today" used for bucket
boundaries, plus strict parsing of YYYY-MM-DD dates and UTC timestamps:
- Timestamps are stored as ISO-8601 UTC
- Bucket dates are calendar dates in the configured timezone
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidDateError

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "format_utc_iso8601",
    "get_current_utc",
    "parse_day",
    "parse_utc_iso8601",
    "resolve_timezone",
]

_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def get_current_utc() -> datetime:
    """Get current time in UTC.

    Returns
    -------
    datetime
        Current time, timezone-aware UTC
    """
    return datetime.now(timezone.utc)


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC with a trailing Z.

    Parameters
    ----------
    dt
        Datetime to format (naive values are assumed UTC)

    Returns
    -------
    str
        e.g. ``2024-01-01T12:00:00.123456Z``
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_utc_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Parameters
    ----------
    value
        Timestamp string; ``Z`` suffix accepted

    Returns
    -------
    datetime
        Timezone-aware UTC datetime

    Raises
    ------
    ValueError
        If the string is not ISO-8601
    """
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_day(value: str | date) -> date:
    """Parse a strict YYYY-MM-DD calendar date.

    Parameters
    ----------
    value
        Date string or date object

    Returns
    -------
    date
        Parsed calendar date

    Raises
    ------
    InvalidDateError
        If the value is not a well-formed calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DAY_PATTERN.match(value):
        raise InvalidDateError(f"Invalid date format: {value!r}. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateError(f"Invalid calendar date: {value!r}") from exc


def resolve_timezone(name: str | None) -> tzinfo:
    """Resolve a timezone name, falling back to the server's local zone.

    Parameters
    ----------
    name
        IANA timezone name, or None/"local" for the server zone

    Raises
    ------
    ValueError
        If the timezone name is unknown
    """
    if not name or name == "local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone: {name}") from exc


class Clock:
    """Source of "now" and "today" for bucket boundaries."""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock anchored to one server timezone."""

    def __init__(self, tz: tzinfo | str | None = None) -> None:
        self.tz = tz if isinstance(tz, tzinfo) else resolve_timezone(tz)

    def now(self) -> datetime:
        return get_current_utc()

    def today(self) -> date:
        return datetime.now(self.tz).date()


class FixedClock(Clock):
    """Manually driven clock for tests and replay tooling.

    Example:
        >>> clock = FixedClock(date(2024, 1, 1))
        >>> clock.advance(days=1)
        >>> clock.today()
        datetime.date(2024, 1, 2)
    """

    def __init__(self, day: date | str) -> None:
        self._day = parse_day(day)
        self._offset = timedelta()

    def set(self, day: date | str) -> None:
        self._day = parse_day(day)
        self._offset = timedelta()

    def advance(self, *, days: int = 0, seconds: float = 0) -> None:
        self._offset += timedelta(days=days, seconds=seconds)

    def now(self) -> datetime:
        base = datetime(self._day.year, self._day.month, self._day.day, 12, tzinfo=timezone.utc)
        return base + self._offset

    def today(self) -> date:
        return self.now().date()
