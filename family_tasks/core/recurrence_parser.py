"""Recurrence helpers: cron translation, date matching and human-readable text."""

from collections.abc import Iterator
from datetime import date, datetime, time

from croniter import croniter

from family_tasks.domain.periodic_task import DailyRecurrence, MonthlyRecurrence, WeeklyRecurrence


AnyRecurrence = DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence

# Weekday convention here is Monday=0 ... Sunday=6; cron uses Sunday=0 ... Saturday=6.
_CRON_WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def to_cron_weekday(week_day: int) -> int:
    """Convert Monday=0 weekday numbering to cron's Sunday=0 numbering."""
    return (week_day + 1) % 7


def recurrence_to_cron(recurrence: AnyRecurrence) -> str:
    """Translate a recurrence into a midnight CRON expression.

    Args:
        recurrence: Daily, weekly or monthly recurrence

    Returns:
        CRON expression (e.g., "0 0 * * 1,3" for Monday and Wednesday)
    """
    if isinstance(recurrence, WeeklyRecurrence):
        dows = sorted(to_cron_weekday(d) for d in recurrence.week_days)
        return f"0 0 * * {','.join(str(d) for d in dows)}"
    if isinstance(recurrence, MonthlyRecurrence):
        return f"0 0 {','.join(str(d) for d in sorted(recurrence.month_days))} * *"
    return "0 0 * * *"


def matches(recurrence: AnyRecurrence, day: date) -> bool:
    """Return True if the recurrence's schedule includes `day`.

    Daily always matches; weekly matches on weekday membership; monthly on
    day-of-month membership (a 31st-only rule never matches a 30-day month).
    """
    return bool(croniter.match(recurrence_to_cron(recurrence), datetime.combine(day, time.min)))


def iter_scheduled_dates(recurrence: AnyRecurrence, after: date) -> Iterator[date]:
    """Yield scheduled dates strictly after `after`, in ascending order, forever."""
    cron = croniter(recurrence_to_cron(recurrence), datetime.combine(after, time.min))
    while True:
        yield cron.get_next(datetime).date()


def _ordinal(day: int) -> str:
    suffix = "th"
    if day in (1, 21, 31):
        suffix = "st"
    elif day in (2, 22):
        suffix = "nd"
    elif day in (3, 23):
        suffix = "rd"
    return f"{day}{suffix}"


def cron_to_human(cron_expr: str) -> str:
    """Convert a midnight CRON expression to human-readable text.

    Args:
        cron_expr: CRON expression (e.g., "0 0 * * 1")

    Returns:
        Human-readable description (e.g., "every Monday")
    """
    parts = cron_expr.split()
    if len(parts) != 5:  # noqa: PLR2004
        return cron_expr  # Return as-is if not valid

    _minute, _hour, day_of_month, month, day_of_week = parts

    # Daily (every day of week, every day of month)
    if day_of_week == "*" and day_of_month == "*" and month == "*":
        return "daily"

    # Weekly (specific days of week)
    if day_of_month == "*" and month == "*" and day_of_week != "*":
        try:
            days = [_CRON_WEEKDAY_NAMES[int(d)] for d in day_of_week.split(",")]
            return f"every {', '.join(days)}"
        except (ValueError, IndexError):
            pass

    # Monthly (specific days of month)
    if day_of_week == "*" and month == "*" and day_of_month != "*":
        try:
            days = [_ordinal(int(d)) for d in day_of_month.split(",")]
            return f"monthly on the {', '.join(days)}"
        except ValueError:
            pass

    return f"scheduled ({cron_expr})"


def describe_recurrence(recurrence: AnyRecurrence) -> str:
    """Human-readable description of a recurrence (e.g., "every Monday, Wednesday")."""
    return cron_to_human(recurrence_to_cron(recurrence))
