"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: SLAPolicy, TicketSLASnapshot, SLASweepResult
- Value Objects: DaySchedule, BusinessHoursConfig
- Domain Services: SLACalculator and the business-hours calendar

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.sla.domain.entities import SLAPolicy, TicketSLASnapshot, SLASweepResult
from helpdesk.sla.domain.value_objects import (
    SLACalculator,
    DaySchedule,
    BusinessHoursConfig,
)
from helpdesk.sla.domain.business_hours import (
    DEFAULT_SCHEDULE,
    MAX_DAY_ITERATIONS,
    add_business_minutes,
    default_business_hours,
    get_business_minutes_between,
    schedule_has_open_hours,
)

__all__ = [
    # Entities
    "SLAPolicy",
    "TicketSLASnapshot",
    "SLASweepResult",
    # Value Objects & Services
    "SLACalculator",
    "DaySchedule",
    "BusinessHoursConfig",
    # Calendar
    "DEFAULT_SCHEDULE",
    "MAX_DAY_ITERATIONS",
    "add_business_minutes",
    "default_business_hours",
    "get_business_minutes_between",
    "schedule_has_open_hours",
]
