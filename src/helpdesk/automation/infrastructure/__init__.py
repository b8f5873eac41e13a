"""
Automation Infrastructure Layer
===============================

SQLAlchemy models and repositories for automation rules and ticket tags.
"""

from helpdesk.automation.infrastructure.models import AutomationModel, TagModel, TicketTagModel
from helpdesk.automation.infrastructure.repositories import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)

__all__ = [
    "AutomationModel",
    "TagModel",
    "TicketTagModel",
    "SQLAlchemyAutomationRepository",
    "SQLAlchemyTicketActionRepository",
]
