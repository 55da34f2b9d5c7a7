# File: utils/dt_utils.py
"""Date and time utilities for Care Scheduler.

Pure Python date/time functions with ZERO store or manager dependencies.
All functions here can be unit tested without fixtures.

Functions:
    - set_default_timezone: Configure "local" time
    - dt_local_tzinfo: Timezone used for local datetimes
    - dt_today_local: Get today's date in local timezone
    - dt_now_local: Get current datetime in local timezone
    - dt_now_iso: Get current datetime as ISO string
    - parse_time_of_day: Parse "HH:MM" into a `datetime.time`
    - time_to_minutes / minutes_to_time: Minutes-since-midnight conversions
    - format_time_of_day: Format a time/datetime as "HH:MM"
    - dt_parse_date: Parse ISO dates (and dates/datetimes) into `datetime.date`
    - normalize_date: Midnight-normalized ISO date string
    - weekday_index: Weekday with 0 = Sunday ... 6 = Saturday
    - combine_date_time: Build a datetime from a date and "HH:MM"
    - minutes_between: Signed difference between two datetimes in minutes
"""

from __future__ import annotations

from datetime import date, datetime, time
import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import tzinfo

# Module-level logger (no package-logger import to keep utils standalone)
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# "HH:MM" with 24h clock; single-digit hours are accepted ("7:05")
_TIME_OF_DAY_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60

# Default timezone; None means the system local timezone
DEFAULT_TIME_ZONE: tzinfo | None = None


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: tzinfo | None) -> None:
    """Set the timezone used to resolve "now" and "today".

    Args:
        tz: Timezone object, or None to follow the system local timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def dt_local_tzinfo(tz: tzinfo | None = None) -> tzinfo:
    """Return the timezone that "local" datetimes are built in.

    The override wins, then the configured default, then the system's
    current UTC offset.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if tz_info is not None:
        return tz_info
    return dt_now_local().tzinfo  # type: ignore[return-value]


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: tzinfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if tz_info is None:
        return datetime.now().astimezone()
    return datetime.now(tz_info)


def dt_today_local(tz: tzinfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`."""
    return dt_now_local(tz).date()


def dt_now_iso(tz: tzinfo | None = None) -> str:
    """Return the current local datetime as an ISO 8601 string.

    Example:
        "2026-04-07T14:30:00.123456-05:00"
    """
    return dt_now_local(tz).isoformat()


# ==============================================================================
# Time of Day
# ==============================================================================


def parse_time_of_day(value: str) -> time:
    """Parse an "HH:MM" string into a `datetime.time`.

    Args:
        value: Time string in 24h "HH:MM" format

    Returns:
        Parsed time (seconds are always zero)

    Raises:
        ValueError: If the value is not a valid "HH:MM" string
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected HH:MM string, got {type(value).__name__}")
    match = _TIME_OF_DAY_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid time of day: {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def is_valid_time_of_day(value: object) -> bool:
    """Return True if value is a valid "HH:MM" string."""
    return isinstance(value, str) and _TIME_OF_DAY_RE.match(value.strip()) is not None


def time_to_minutes(value: str | time) -> int:
    """Convert "HH:MM" (or a `datetime.time`) to minutes since midnight.

    Raises:
        ValueError: If a string value is malformed
    """
    parsed = value if isinstance(value, time) else parse_time_of_day(value)
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM", wrapping around midnight.

    Example:
        >>> minutes_to_time(-1)
        '23:59'
    """
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_time_of_day(value: time | datetime) -> str:
    """Format a time or datetime as "HH:MM"."""
    return f"{value.hour:02d}:{value.minute:02d}"


# ==============================================================================
# Dates
# ==============================================================================


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely parse a value into a `datetime.date`.

    Accepts ISO date strings ("2026-04-07"), ISO datetime strings, `date`
    and `datetime` objects. Datetimes are truncated to their date.

    Returns:
        datetime.date or None if parsing fails.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        _LOGGER.debug("Could not parse date value: %s", value)
        return None


def normalize_date(value: str | date | datetime) -> str:
    """Normalize a date-like value to midnight, returned as ISO date string.

    Raises:
        ValueError: If the value cannot be parsed as a date
    """
    parsed = dt_parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.isoformat()


def compact_date(value: str | date | datetime) -> str:
    """Return the date as "YYYYMMDD" (used in deterministic ids)."""
    parsed = dt_parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.strftime("%Y%m%d")


def weekday_index(value: date | datetime) -> int:
    """Return the weekday with 0 = Sunday, 1 = Monday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def combine_date_time(
    day: str | date | datetime,
    time_of_day: str | time,
    tz_info: tzinfo | None = None,
) -> datetime:
    """Combine a date and an "HH:MM" time into a datetime.

    Args:
        day: Date (ISO string, date or datetime)
        time_of_day: "HH:MM" string or `datetime.time`
        tz_info: Timezone to attach; the result is naive when None

    Raises:
        ValueError: If either part cannot be parsed
    """
    parsed_day = dt_parse_date(day)
    if parsed_day is None:
        raise ValueError(f"Invalid date: {day!r}")
    parsed_time = (
        time_of_day if isinstance(time_of_day, time) else parse_time_of_day(time_of_day)
    )
    return datetime.combine(parsed_day, parsed_time, tzinfo=tz_info)


def minutes_between(later: datetime, earlier: datetime) -> float:
    """Return (later - earlier) in minutes; negative when later is before."""
    return (later - earlier).total_seconds() / 60
