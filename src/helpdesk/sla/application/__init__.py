"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: Deadline bookkeeping, configuration and the periodic sweep
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.sla.application.dto import (
    BusinessHoursUpdate,
    PolicyUpsert,
    PriorityChange,
    BusinessHoursResponse,
    PolicyResponse,
    PolicyListResponse,
    SweepResponse,
)
from helpdesk.sla.application.services import (
    SLAConfigService,
    SLADeadlineService,
    SLAMonitorService,
    ITicketSLARepository,
    ISLAConfigRepository,
)

__all__ = [
    # DTOs
    "BusinessHoursUpdate",
    "PolicyUpsert",
    "PriorityChange",
    "BusinessHoursResponse",
    "PolicyResponse",
    "PolicyListResponse",
    "SweepResponse",
    # Services
    "SLAConfigService",
    "SLADeadlineService",
    "SLAMonitorService",
    # Repository Interfaces
    "ITicketSLARepository",
    "ISLAConfigRepository",
]
