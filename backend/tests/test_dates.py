from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from studytrack import dates


def test_today_and_days_ago_use_the_reference_instant():
    instant = datetime(2024, 3, 1, 23, 30, tzinfo=ZoneInfo("UTC"))
    assert dates.today(instant) == "2024-03-01"
    assert dates.days_ago(0, instant) == "2024-03-01"
    assert dates.days_ago(1, instant) == "2024-02-29"
    assert dates.days_ago(365, instant) == "2023-03-02"


def test_today_defaults_to_now(freeze_today):
    freeze_today("2024-07-15")
    assert dates.today() == "2024-07-15"
    assert dates.days_ago(7) == "2024-07-08"


@pytest.mark.parametrize("day,expected", [
    ("2024-01-01", ("2024-01-01", "2024-01-07")),  # Monday
    ("2024-01-03", ("2024-01-01", "2024-01-07")),
    ("2024-01-06", ("2024-01-01", "2024-01-07")),  # Saturday
    ("2024-01-07", ("2024-01-01", "2024-01-07")),  # Sunday belongs to the week before it
    ("2024-02-29", ("2024-02-26", "2024-03-03")),
    ("2023-12-31", ("2023-12-25", "2023-12-31")),
])
def test_iso_week_range(day, expected):
    assert dates.iso_week_range(day) == expected


def test_shift_day_and_series_cross_month_and_year():
    assert dates.shift_day("2023-12-31", 1) == "2024-01-01"
    assert dates.shift_day("2024-03-01", -1) == "2024-02-29"
    assert dates.day_series("2023-12-30", 4) == ["2023-12-30", "2023-12-31", "2024-01-01", "2024-01-02"]


def test_is_valid_day():
    assert dates.is_valid_day("2024-02-29")
    assert not dates.is_valid_day("2023-02-29")
    assert not dates.is_valid_day("yesterday")
    assert not dates.is_valid_day(None)
