"""
Model Registry
==============

Imports every ORM model so Base.metadata knows all tables.
"""

from helpdesk.shared.infrastructure.models import OrganizationModel, MemberModel
from helpdesk.tickets.models import TicketModel, ContactModel, MailboxModel
from helpdesk.sla.infrastructure.models import BusinessHoursModel, SLAPolicyModel
from helpdesk.automation.infrastructure.models import AutomationModel, TagModel, TicketTagModel
from helpdesk.notifications.models import NotificationModel

__all__ = [
    "OrganizationModel",
    "MemberModel",
    "TicketModel",
    "ContactModel",
    "MailboxModel",
    "BusinessHoursModel",
    "SLAPolicyModel",
    "AutomationModel",
    "TagModel",
    "TicketTagModel",
    "NotificationModel",
]
