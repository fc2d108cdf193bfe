from datetime import date

import pytest

from family_tasks.core.recurrence_parser import (
    cron_to_human,
    describe_recurrence,
    iter_scheduled_dates,
    matches,
    recurrence_to_cron,
    to_cron_weekday,
)
from family_tasks.domain.periodic_task import DailyRecurrence, MonthlyRecurrence, WeeklyRecurrence


@pytest.mark.unit
class TestRecurrenceToCron:
    def test_weekday_mapping(self):
        assert to_cron_weekday(0) == 1  # Monday
        assert to_cron_weekday(6) == 0  # Sunday

    def test_daily(self):
        assert recurrence_to_cron(DailyRecurrence()) == "0 0 * * *"

    def test_weekly(self):
        assert recurrence_to_cron(WeeklyRecurrence(week_days=frozenset({6, 0, 2}))) == "0 0 * * 0,1,3"

    def test_monthly(self):
        assert recurrence_to_cron(MonthlyRecurrence(month_days=frozenset({15, 1}))) == "0 0 1,15 * *"


@pytest.mark.unit
class TestMatches:
    def test_daily_matches_everything(self):
        assert matches(DailyRecurrence(), date(2024, 2, 29))

    def test_weekly(self):
        weekly = WeeklyRecurrence(week_days=frozenset({0, 2}))

        assert matches(weekly, date(2024, 1, 1))
        assert not matches(weekly, date(2024, 1, 2))
        assert matches(weekly, date(2024, 1, 3))

    def test_monthly(self):
        monthly = MonthlyRecurrence(month_days=frozenset({29}))

        assert matches(monthly, date(2024, 2, 29))
        assert not matches(monthly, date(2023, 2, 28))


@pytest.mark.unit
def test_iter_scheduled_dates_is_strictly_after():
    dates = iter_scheduled_dates(WeeklyRecurrence(week_days=frozenset({0})), date(2024, 1, 1))

    assert [next(dates) for _ in range(2)] == [date(2024, 1, 8), date(2024, 1, 15)]


@pytest.mark.unit
class TestHumanText:
    def test_describe(self):
        assert describe_recurrence(DailyRecurrence()) == "daily"
        assert describe_recurrence(WeeklyRecurrence(week_days=frozenset({0, 2}))) == "every Monday, Wednesday"
        assert describe_recurrence(MonthlyRecurrence(month_days=frozenset({1, 22, 31}))) == "monthly on the 1st, 22nd, 31st"

    def test_unrecognised_expression(self):
        assert cron_to_human("0 0 1 1 *") == "scheduled (0 0 1 1 *)"
        assert cron_to_human("not cron") == "not cron"
