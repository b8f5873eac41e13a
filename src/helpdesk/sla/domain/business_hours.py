"""
Business-Hours Calendar
=======================

Pure functions converting a recurring weekly schedule plus a point in time
into elapsed-time and deadline calculations.

All arithmetic is UTC minute-of-day (0-1439). Seconds are ignored when
reading the clock and zeroed when a deadline lands inside an open window.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from helpdesk.sla.domain.value_objects import BusinessHoursConfig, DaySchedule

# Upper bound on day-iterations (> 1 year) so degenerate schedules terminate
MAX_DAY_ITERATIONS = 400

DEFAULT_SCHEDULE: tuple[DaySchedule, ...] = (
    DaySchedule(day_of_week=0, is_enabled=False, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=1, is_enabled=True, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=2, is_enabled=True, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=3, is_enabled=True, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=4, is_enabled=True, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=5, is_enabled=True, start_time="09:00", end_time="17:00"),
    DaySchedule(day_of_week=6, is_enabled=False, start_time="09:00", end_time="17:00"),
)


def default_business_hours() -> BusinessHoursConfig:
    """Configuration assumed for tenants that never saved business hours."""
    return BusinessHoursConfig(is_enabled=False, schedule=list(DEFAULT_SCHEDULE))


def parse_time(value: str) -> int:
    """Convert "HH:MM" into minutes past midnight."""
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


def day_of_week(moment: datetime) -> int:
    """Day of week with 0 = Sunday .. 6 = Saturday."""
    return moment.isoweekday() % 7


def schedule_for_day(schedule: Sequence[DaySchedule], weekday: int) -> Optional[DaySchedule]:
    for day in schedule:
        if day.day_of_week == weekday:
            return day
    return None


def schedule_has_open_hours(schedule: Sequence[DaySchedule]) -> bool:
    """True if at least one day contributes open minutes."""
    return any(
        day.is_enabled and parse_time(day.end_time) > parse_time(day.start_time)
        for day in schedule
    )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def _at_minute_of_day(moment: datetime, minute_of_day: int) -> datetime:
    return moment.replace(
        hour=minute_of_day // 60, minute=minute_of_day % 60, second=0, microsecond=0
    )


def _next_midnight(moment: datetime) -> datetime:
    return (moment + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


def add_business_minutes(
    start_time: datetime,
    minutes: int,
    schedule: Sequence[DaySchedule],
    is_enabled: bool
) -> datetime:
    """
    Advance `minutes` of open time from `start_time`.

    Walks forward day by day through the weekly schedule. When business
    hours are disabled, or `minutes <= 0`, plain wall-clock minutes are
    added instead.

    If the safety bound is exhausted (e.g. every day disabled) the cursor
    position reached at that point is returned; the function never raises
    or hangs.

    Args:
        start_time: Point to start counting from (naive values are UTC)
        minutes: Open minutes to consume
        schedule: Seven DaySchedule entries keyed by day_of_week
        is_enabled: Whether the tenant's business hours apply at all

    Returns:
        The UTC timestamp reached
    """
    start_time = _as_utc(start_time)

    if not is_enabled or minutes <= 0:
        return start_time + timedelta(minutes=minutes)

    remaining = minutes
    cursor = start_time

    for _ in range(MAX_DAY_ITERATIONS):
        if remaining <= 0:
            break

        day = schedule_for_day(schedule, day_of_week(cursor))
        if day is None or not day.is_enabled:
            cursor = _next_midnight(cursor)
            continue

        open_minute = parse_time(day.start_time)
        close_minute = parse_time(day.end_time)
        current_minute = _minute_of_day(cursor)

        if current_minute >= close_minute:
            cursor = _next_midnight(cursor)
            continue

        effective_start = max(current_minute, open_minute)
        available = close_minute - effective_start

        if remaining <= available:
            return _at_minute_of_day(cursor, effective_start + remaining)

        remaining -= available
        cursor = _next_midnight(cursor)

    return cursor


def get_business_minutes_between(
    start: datetime,
    end: datetime,
    schedule: Sequence[DaySchedule],
    is_enabled: bool
) -> float:
    """
    Count open minutes between two timestamps.

    Inverse of add_business_minutes. Returns wall-clock minutes (clamped at
    0) when business hours are disabled, and 0 whenever `end <= start`.
    """
    start = _as_utc(start)
    end = _as_utc(end)

    if not is_enabled:
        return max(0.0, (end - start).total_seconds() / 60)

    if end <= start:
        return 0

    total = 0
    cursor = start

    for _ in range(MAX_DAY_ITERATIONS):
        if cursor >= end:
            break

        day = schedule_for_day(schedule, day_of_week(cursor))
        if day is None or not day.is_enabled:
            cursor = _next_midnight(cursor)
            continue

        open_minute = parse_time(day.start_time)
        close_minute = parse_time(day.end_time)
        current_minute = _minute_of_day(cursor)

        if current_minute >= close_minute:
            cursor = _next_midnight(cursor)
            continue

        effective_start = max(current_minute, open_minute)

        if end <= _at_minute_of_day(cursor, close_minute):
            effective_end = min(max(_minute_of_day(end), open_minute), close_minute)
            total += max(0, effective_end - effective_start)
            break

        total += close_minute - effective_start
        cursor = _next_midnight(cursor)

    return total
