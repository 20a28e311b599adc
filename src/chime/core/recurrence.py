"""Recurrence engine — next occurrence of a schedule, computed in its own timezone.

Interval schedules step in absolute UTC time. Daily and slower schedules are
evaluated against the wall clock of the schedule's IANA timezone and converted
back to UTC, so "09:00 every day" stays at 09:00 local across DST changes.
"""

from __future__ import annotations

import calendar
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from chime.core.schedule import (
    DailySchedule,
    IntervalSchedule,
    MonthlySchedule,
    OnceSchedule,
    Schedule,
    WeeklySchedule,
    YearlySchedule,
)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _wall_clock(instant: datetime, tz: ZoneInfo) -> datetime:
    return instant.astimezone(tz).replace(tzinfo=None)


def local_to_utc(local_date: date, local_time: time, timezone: str) -> datetime:
    """Convert a wall-clock date/time in ``timezone`` to a UTC instant.

    Starts from a guess that treats the wall clock as UTC, observes what that
    guess looks like locally and shifts by the difference. One more
    observation corrects guesses that landed on the other side of a DST
    change. Local times that do not exist (spring-forward gap) or exist
    twice (fall-back overlap) resolve to whichever instant the shifts land
    on; that residual ambiguity is accepted.
    """
    tz = ZoneInfo(timezone)
    intended = datetime.combine(local_date, local_time)
    guess = intended.replace(tzinfo=UTC)

    adjusted = guess - (_wall_clock(guess, tz) - intended)
    delta = _wall_clock(adjusted, tz) - intended
    if not delta:
        return adjusted

    corrected = adjusted - delta
    if _wall_clock(corrected, tz) == intended:
        return corrected
    return adjusted


def _sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def _clamped(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _next_daily(schedule: DailySchedule, reference: datetime) -> datetime:
    day = _wall_clock(reference, ZoneInfo(schedule.timezone)).date()
    candidate = local_to_utc(day, schedule.at_time, schedule.timezone)
    while candidate <= reference:
        day += timedelta(days=1)
        candidate = local_to_utc(day, schedule.at_time, schedule.timezone)
    return candidate


def _next_weekly(schedule: WeeklySchedule, reference: datetime) -> datetime:
    today = _wall_clock(reference, ZoneInfo(schedule.timezone)).date()
    day = today + timedelta(days=(schedule.weekday - _sunday_based_weekday(today)) % 7)
    candidate = local_to_utc(day, schedule.at_time, schedule.timezone)
    while candidate <= reference:
        day += timedelta(days=7)
        candidate = local_to_utc(day, schedule.at_time, schedule.timezone)
    return candidate


def _next_monthly(schedule: MonthlySchedule, reference: datetime) -> datetime:
    today = _wall_clock(reference, ZoneInfo(schedule.timezone)).date()
    year, month = today.year, today.month
    candidate = local_to_utc(
        _clamped(year, month, schedule.day), schedule.at_time, schedule.timezone
    )
    while candidate <= reference:
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        candidate = local_to_utc(
            _clamped(year, month, schedule.day), schedule.at_time, schedule.timezone
        )
    return candidate


def _next_yearly(schedule: YearlySchedule, reference: datetime) -> datetime:
    year = _wall_clock(reference, ZoneInfo(schedule.timezone)).year
    candidate = local_to_utc(
        _clamped(year, schedule.month, schedule.day), schedule.at_time, schedule.timezone
    )
    while candidate <= reference:
        year += 1
        candidate = local_to_utc(
            _clamped(year, schedule.month, schedule.day), schedule.at_time, schedule.timezone
        )
    return candidate


def next_occurrence(schedule: Schedule, reference: datetime) -> datetime | None:
    """Return the first occurrence of ``schedule`` strictly after ``reference``.

    Returns ``None`` for a one-shot schedule whose instant is not after
    ``reference``, i.e. once it has been fulfilled.
    """
    reference = ensure_utc(reference)
    match schedule:
        case OnceSchedule(at=at):
            at = ensure_utc(at)
            return at if at > reference else None
        case IntervalSchedule(minutes=minutes):
            return reference + timedelta(minutes=minutes)
        case DailySchedule():
            return _next_daily(schedule, reference)
        case WeeklySchedule():
            return _next_weekly(schedule, reference)
        case MonthlySchedule():
            return _next_monthly(schedule, reference)
        case YearlySchedule():
            return _next_yearly(schedule, reference)
    raise TypeError(f"Unsupported schedule: {schedule!r}")
