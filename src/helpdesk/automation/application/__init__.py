"""
Automation Application Layer
============================

Application layer for the automation module.

Contains:
- Services: Rule loading, evaluation and action execution
- DTOs: Data transfer objects for API serialization
"""

from helpdesk.automation.application.dto import (
    AutomationCreate,
    AutomationUpdate,
    AutomationResponse,
    AutomationListResponse,
    RunAutomationsRequest,
    RunAutomationsResponse,
    ActionResponse,
)
from helpdesk.automation.application.services import (
    ActionExecutor,
    AutomationService,
    IAutomationRepository,
    ITicketActionRepository,
)

__all__ = [
    # DTOs
    "AutomationCreate",
    "AutomationUpdate",
    "AutomationResponse",
    "AutomationListResponse",
    "RunAutomationsRequest",
    "RunAutomationsResponse",
    "ActionResponse",
    # Services
    "ActionExecutor",
    "AutomationService",
    # Repository Interfaces
    "IAutomationRepository",
    "ITicketActionRepository",
]
