"""Tests for chime.core.schedule."""

from datetime import UTC, datetime, time

import pytest

from chime.core.errors import InvalidScheduleError
from chime.core.schedule import (
    DailySchedule,
    IntervalSchedule,
    MonthlySchedule,
    OnceSchedule,
    ScheduleKind,
    WeeklySchedule,
    YearlySchedule,
    parse_at_time,
    schedule_from_fields,
)


def test_parse_at_time():
    assert parse_at_time("09:05") == time(9, 5)
    assert parse_at_time(" 23:59 ") == time(23, 59)


@pytest.mark.parametrize("value", [None, "", "9", "25:00", "12:61", "ab:cd", "1:2:3"])
def test_parse_at_time_rejects(value):
    with pytest.raises(InvalidScheduleError):
        parse_at_time(value)


def test_once_schedule():
    at = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    schedule = schedule_from_fields("once", "UTC", once_at=at)
    assert schedule == OnceSchedule(at=at, timezone="UTC")
    assert schedule.kind is ScheduleKind.ONCE


def test_once_requires_instant():
    with pytest.raises(InvalidScheduleError, match="once_at"):
        schedule_from_fields("once", "UTC")


def test_interval_schedule():
    schedule = schedule_from_fields("interval", "UTC", interval_minutes=15)
    assert schedule == IntervalSchedule(minutes=15)


@pytest.mark.parametrize("minutes", [None, 0, -5])
def test_interval_requires_positive_minutes(minutes):
    with pytest.raises(InvalidScheduleError):
        schedule_from_fields("interval", "UTC", interval_minutes=minutes)


def test_daily_schedule_ignores_unrelated_fields():
    schedule = schedule_from_fields(
        "daily", "Europe/Berlin", at_time="07:30", by_weekday=3, interval_minutes=5
    )
    assert schedule == DailySchedule(at_time=time(7, 30), timezone="Europe/Berlin")


def test_weekly_schedule():
    schedule = schedule_from_fields("weekly", "UTC", at_time="09:05", by_weekday=1)
    assert schedule == WeeklySchedule(at_time=time(9, 5), weekday=1)


@pytest.mark.parametrize("weekday", [None, -1, 7])
def test_weekly_weekday_range(weekday):
    with pytest.raises(InvalidScheduleError):
        schedule_from_fields("weekly", "UTC", at_time="09:05", by_weekday=weekday)


def test_monthly_schedule():
    schedule = schedule_from_fields("monthly", "UTC", at_time="10:00", by_monthday=31)
    assert schedule == MonthlySchedule(at_time=time(10, 0), day=31)


def test_monthly_day_range():
    with pytest.raises(InvalidScheduleError, match="by_monthday"):
        schedule_from_fields("monthly", "UTC", at_time="10:00", by_monthday=32)


def test_yearly_schedule():
    schedule = schedule_from_fields("yearly", "UTC", at_time="08:00", by_month=2, by_monthday=29)
    assert schedule == YearlySchedule(at_time=time(8, 0), month=2, day=29)


def test_yearly_requires_month():
    with pytest.raises(InvalidScheduleError, match="by_month"):
        schedule_from_fields("yearly", "UTC", at_time="08:00", by_monthday=1)


def test_unknown_kind():
    with pytest.raises(InvalidScheduleError, match="Unknown schedule kind"):
        schedule_from_fields("fortnightly", "UTC")


def test_unknown_timezone():
    with pytest.raises(InvalidScheduleError, match="Unknown timezone"):
        schedule_from_fields("daily", "Mars/Olympus_Mons", at_time="09:00")
