"""
Tickets Module
==============

Persistence models for tickets and the contacts/mailboxes they reference.
Ticket CRUD lives in the wider help-desk; the SLA and automation modules
read and stamp these rows.
"""

from helpdesk.tickets.models import TicketModel, ContactModel, MailboxModel

__all__ = ["TicketModel", "ContactModel", "MailboxModel"]
