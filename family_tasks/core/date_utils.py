"""Calendar date helpers.

Dates are `datetime.date` internally and "YYYY-MM-DD" strings at the storage
and HTTP boundary. Month buckets are keyed "YYYY-MM".
"""

from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from family_tasks.core.config import constants
from family_tasks.core.errors import ValidationError


def month_key(value: date) -> str:
    """Return the "YYYY-MM" bucket key for a date."""
    return value.strftime(constants.MONTH_KEY_FORMAT)


def month_key_for(year: int, month: int) -> str:
    """Build a month key from numeric year and month.

    Raises:
        ValidationError: If month is outside 1-12
    """
    if not 1 <= month <= 12:  # noqa: PLR2004
        msg = f"Invalid month: {month}"
        raise ValidationError(msg)
    return f"{year:04d}-{month:02d}"


def months_between(start: date, end: date) -> list[str]:
    """Return every month key from start's month through end's month, inclusive.

    An inverted range yields an empty list.
    """
    months: list[str] = []
    current = start.replace(day=1)
    while current <= end:
        months.append(month_key(current))
        current += relativedelta(months=1)
    return months


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each calendar day from start to end, inclusive, in ascending order."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def today_local(tz_name: str | None = None) -> date:
    """Get today's date in the configured timezone."""
    tz = ZoneInfo(tz_name) if tz_name else UTC
    return datetime.now(tz).date()


def now_iso() -> str:
    """Current UTC timestamp in ISO-8601 format."""
    return datetime.now(UTC).isoformat()
