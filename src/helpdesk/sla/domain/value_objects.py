"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import math
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class DaySchedule(BaseModel):
    """
    Opening hours for one day of the week.

    `day_of_week` follows 0 = Sunday .. 6 = Saturday; times are "HH:MM" UTC.
    """
    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday .. 6 = Saturday")
    is_enabled: bool = Field(description="Whether the day has open hours")
    start_time: str = Field(description="Opening time, HH:MM")
    end_time: str = Field(description="Closing time, HH:MM")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not _TIME_PATTERN.match(v):
            raise ValueError("time must be HH:MM between 00:00 and 23:59")
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "DaySchedule":
        if self.is_enabled and self.start_time >= self.end_time:
            raise ValueError(
                f"day {self.day_of_week}: start_time must be before end_time"
            )
        return self


class BusinessHoursConfig(BaseModel):
    """
    Per-tenant business hours.

    The weekly schedule must list every day exactly once. When `is_enabled`
    is False the calendar degrades to wall-clock arithmetic.
    """
    model_config = ConfigDict(frozen=True)

    is_enabled: bool = False
    schedule: List[DaySchedule]

    @field_validator("schedule")
    @classmethod
    def validate_week(cls, v: List[DaySchedule]) -> List[DaySchedule]:
        days = [day.day_of_week for day in v]
        if len(v) != 7 or len(set(days)) != 7:
            raise ValueError("schedule must contain exactly one entry per day of week (0-6)")
        return sorted(v, key=lambda day: day.day_of_week)


class SLACalculator:
    """
    Pure functions for first-response SLA checks.

    Stateless utility class - all warning/breach arithmetic in one place.
    """

    @staticmethod
    def elapsed_ratio(
        created_at: datetime,
        due_at: datetime,
        current_time: datetime
    ) -> Optional[float]:
        """
        Fraction of the response window already used.

        Uses wall-clock bounds even when `due_at` was computed on business
        hours. Returns None for an empty or inverted window.
        """
        total = (due_at - created_at).total_seconds()
        if total <= 0:
            return None
        return (current_time - created_at).total_seconds() / total

    @staticmethod
    def should_warn(
        created_at: datetime,
        due_at: datetime,
        current_time: datetime,
        threshold: float
    ) -> bool:
        """True once `threshold` of the window has elapsed."""
        ratio = SLACalculator.elapsed_ratio(created_at, due_at, current_time)
        return ratio is not None and ratio >= threshold

    @staticmethod
    def remaining_minutes(due_at: datetime, current_time: datetime) -> int:
        """Whole minutes left before `due_at`, rounded up and floored at 0."""
        seconds = (due_at - current_time).total_seconds()
        return max(0, math.ceil(seconds / 60))

    @staticmethod
    def is_breached(due_at: Optional[datetime], current_time: datetime) -> bool:
        return due_at is not None and due_at < current_time
