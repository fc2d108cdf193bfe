from datetime import date

import pytest

from family_tasks.core.date_utils import (
    add_days,
    iter_days,
    month_key,
    month_key_for,
    months_between,
    today_local,
)
from family_tasks.core.errors import ValidationError


@pytest.mark.unit
class TestMonthKeys:
    def test_month_key(self):
        assert month_key(date(2024, 3, 9)) == "2024-03"
        assert month_key_for(2024, 3) == "2024-03"

    def test_month_key_for_rejects_bad_month(self):
        with pytest.raises(ValidationError):
            month_key_for(2024, 0)

    def test_months_between_crosses_year(self):
        assert months_between(date(2023, 12, 31), date(2024, 1, 1)) == ["2023-12", "2024-01"]

    def test_months_between_single_month(self):
        assert months_between(date(2024, 1, 31), date(2024, 1, 31)) == ["2024-01"]

    def test_months_between_inverted_is_empty(self):
        assert months_between(date(2024, 3, 1), date(2024, 1, 1)) == []


@pytest.mark.unit
def test_iter_days_inclusive():
    assert list(iter_days(date(2024, 2, 28), date(2024, 3, 1))) == [
        date(2024, 2, 28),
        date(2024, 2, 29),
        date(2024, 3, 1),
    ]


@pytest.mark.unit
def test_add_days_crosses_month():
    assert add_days(date(2024, 1, 30), 2) == date(2024, 2, 1)


@pytest.mark.unit
def test_today_local_accepts_timezone_name():
    assert isinstance(today_local("Asia/Shanghai"), date)
    assert isinstance(today_local(None), date)
