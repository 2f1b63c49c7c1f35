"""Timestamp helpers.

Timestamps are kept as naive UTC throughout the service, which is also
what Motor hands back from MongoDB.
"""
import math
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Aware datetimes are converted to UTC; naive ones are assumed to be UTC
    already.

    Examples:
        >>> from datetime import timedelta
        >>> as_utc(datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2))))
        datetime.datetime(2024, 1, 1, 10, 0)
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def week_of_year(day: date) -> int:
    """
    Week number as ``ceil(day_of_year / 7)``.

    This is not ISO-8601 week numbering: weeks always start on January 1st.

    Examples:
        >>> week_of_year(date(2024, 1, 1))
        1
        >>> week_of_year(date(2024, 1, 7))
        1
        >>> week_of_year(date(2024, 1, 8))
        2
        >>> week_of_year(date(2024, 12, 31))
        53
    """
    return math.ceil(day.timetuple().tm_yday / 7)


def sunday_first_weekday(day: date) -> int:
    """Weekday index with Sunday as 0 and Saturday as 6."""
    return (day.weekday() + 1) % 7
