"""
SLA Infrastructure Layer
=========================

Concrete implementations for the SLA module:
- SQLAlchemy models and repositories
- APScheduler wrapper for the periodic sweep
"""

from helpdesk.sla.infrastructure.models import BusinessHoursModel, SLAPolicyModel
from helpdesk.sla.infrastructure.repositories import (
    SQLAlchemyTicketSLARepository,
    SQLAlchemySLAConfigRepository,
)
from helpdesk.sla.infrastructure.external import SLAScheduler

__all__ = [
    "BusinessHoursModel",
    "SLAPolicyModel",
    "SQLAlchemyTicketSLARepository",
    "SQLAlchemySLAConfigRepository",
    "SLAScheduler",
]
