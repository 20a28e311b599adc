"""Reminder schedules — one frozen dataclass per schedule kind."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from chime.core.errors import InvalidScheduleError


class ScheduleKind(enum.StrEnum):
    ONCE = "once"
    INTERVAL = "interval"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class OnceSchedule:
    at: datetime
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.ONCE


@dataclass(frozen=True)
class IntervalSchedule:
    minutes: int
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.INTERVAL


@dataclass(frozen=True)
class DailySchedule:
    at_time: time
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.DAILY


@dataclass(frozen=True)
class WeeklySchedule:
    at_time: time
    weekday: int  # 0=Sunday … 6=Saturday
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.WEEKLY


@dataclass(frozen=True)
class MonthlySchedule:
    at_time: time
    day: int
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.MONTHLY


@dataclass(frozen=True)
class YearlySchedule:
    at_time: time
    month: int
    day: int
    timezone: str = "UTC"
    kind: ScheduleKind = ScheduleKind.YEARLY


Schedule = (
    OnceSchedule
    | IntervalSchedule
    | DailySchedule
    | WeeklySchedule
    | MonthlySchedule
    | YearlySchedule
)


def parse_at_time(value: str | None) -> time:
    """Parse an ``HH:MM`` wall-clock time."""
    if not value:
        raise InvalidScheduleError("at_time is required")
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise InvalidScheduleError(f"Invalid at_time {value!r}, expected HH:MM")
    try:
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    except ValueError as exc:
        raise InvalidScheduleError(f"Invalid at_time {value!r}: {exc}") from exc


def _check_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidScheduleError(f"Unknown timezone {name!r}") from exc
    return name


def _require_range(name: str, value: int | None, low: int, high: int) -> int:
    if value is None:
        raise InvalidScheduleError(f"{name} is required")
    if not low <= value <= high:
        raise InvalidScheduleError(f"{name} must be between {low} and {high}, got {value}")
    return value


def schedule_from_fields(
    kind: str,
    timezone: str,
    *,
    once_at: datetime | None = None,
    interval_minutes: int | None = None,
    at_time: str | None = None,
    by_weekday: int | None = None,
    by_monthday: int | None = None,
    by_month: int | None = None,
) -> Schedule:
    """Build the schedule variant for ``kind`` from flat stored columns.

    Only the fields meaningful for ``kind`` are read; anything else is ignored.
    """
    try:
        schedule_kind = ScheduleKind(kind)
    except ValueError as exc:
        raise InvalidScheduleError(f"Unknown schedule kind {kind!r}") from exc
    tz = _check_timezone(timezone)

    match schedule_kind:
        case ScheduleKind.ONCE:
            if once_at is None:
                raise InvalidScheduleError("once_at is required for once schedules")
            return OnceSchedule(at=once_at, timezone=tz)
        case ScheduleKind.INTERVAL:
            if interval_minutes is None or interval_minutes < 1:
                raise InvalidScheduleError("interval_minutes must be a positive integer")
            return IntervalSchedule(minutes=interval_minutes, timezone=tz)
        case ScheduleKind.DAILY:
            return DailySchedule(at_time=parse_at_time(at_time), timezone=tz)
        case ScheduleKind.WEEKLY:
            return WeeklySchedule(
                at_time=parse_at_time(at_time),
                weekday=_require_range("by_weekday", by_weekday, 0, 6),
                timezone=tz,
            )
        case ScheduleKind.MONTHLY:
            return MonthlySchedule(
                at_time=parse_at_time(at_time),
                day=_require_range("by_monthday", by_monthday, 1, 31),
                timezone=tz,
            )
        case ScheduleKind.YEARLY:
            return YearlySchedule(
                at_time=parse_at_time(at_time),
                month=_require_range("by_month", by_month, 1, 12),
                day=_require_range("by_monthday", by_monthday, 1, 31),
                timezone=tz,
            )
