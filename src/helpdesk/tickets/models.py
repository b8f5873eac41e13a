"""
Ticket Store Models
===================

SQLAlchemy ORM models for tickets (conversations) and the records their
automation facts are read from.

Only the columns the SLA and automation modules read or write are mapped;
the rest of the help-desk schema is owned elsewhere.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.infrastructure.database import Base, UTCDateTime
from helpdesk.config import TicketPriority, TicketStatus, TicketChannel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactModel(Base):
    """Customer who opened the ticket. Maps to the 'contacts' table."""
    __tablename__ = "contacts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)


class MailboxModel(Base):
    """Inbound mailbox a ticket was received on. Maps to the 'mailboxes' table."""
    __tablename__ = "mailboxes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)


class TicketModel(Base):
    """
    Database model for a ticket (conversation).

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)

    subject: Mapped[Optional[str]] = mapped_column(String(998), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketStatus.OPEN)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketPriority.NORMAL)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketChannel.EMAIL)

    contact_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("contacts.id"), nullable=False)
    mailbox_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("mailboxes.id"), nullable=True)
    assigned_to_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # SLA tracking (write-once stamps, see sla.application.services)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    sla_first_response_due_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    sla_warning_notified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    sla_breached_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    contact: Mapped[ContactModel] = relationship(lazy="joined")
    mailbox: Mapped[Optional[MailboxModel]] = relationship(lazy="joined")

    __table_args__ = (
        Index("ticket_org_status_idx", "organization_id", "status"),
        Index("ticket_sla_due_idx", "sla_first_response_due_at"),
    )
