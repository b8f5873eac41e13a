"""
Automation Infrastructure Repositories
======================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
automation rules, tags and the ticket columns actions overwrite.
"""

from typing import Any, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from helpdesk.automation.application.services import IAutomationRepository, ITicketActionRepository
from helpdesk.automation.domain import TicketFacts
from helpdesk.automation.infrastructure.models import AutomationModel, TagModel, TicketTagModel
from helpdesk.core import RepositoryException
from helpdesk.infrastructure.database import insert_ignoring_conflicts
from helpdesk.tickets.models import TicketModel

_UPDATABLE_TICKET_COLUMNS = {"priority", "status", "assigned_to_id"}


def _as_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyAutomationRepository(IAutomationRepository):
    """
    SQLAlchemy implementation of the automation rule repository.

    Every query is scoped to one organization.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active(self, organization_id: str, trigger: str) -> List[AutomationModel]:
        stmt = (
            select(AutomationModel)
            .where(
                AutomationModel.organization_id == organization_id,
                AutomationModel.trigger == trigger,
                AutomationModel.is_active.is_(True),
            )
            .order_by(AutomationModel.priority.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list(self, organization_id: str) -> List[AutomationModel]:
        stmt = (
            select(AutomationModel)
            .where(AutomationModel.organization_id == organization_id)
            .order_by(AutomationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, organization_id: str, automation_id: str) -> Optional[AutomationModel]:
        automation_uuid = _as_uuid(automation_id)
        if automation_uuid is None:
            return None

        stmt = select(AutomationModel).where(
            AutomationModel.id == automation_uuid,
            AutomationModel.organization_id == organization_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, organization_id: str, data: dict) -> AutomationModel:
        model = AutomationModel(id=uuid4(), organization_id=organization_id, **data)
        self._session.add(model)
        await self._session.flush()
        return model

    async def update(
        self,
        organization_id: str,
        automation_id: str,
        changes: dict
    ) -> Optional[AutomationModel]:
        model = await self.get(organization_id, automation_id)
        if model is None:
            return None

        for key, value in changes.items():
            if not hasattr(AutomationModel, key):
                raise RepositoryException(f"Unknown automation field '{key}'")
            setattr(model, key, value)

        await self._session.flush()
        return model

    async def delete(self, organization_id: str, automation_id: str) -> bool:
        model = await self.get(organization_id, automation_id)
        if model is None:
            return False

        await self._session.delete(model)
        await self._session.flush()
        return True


class SQLAlchemyTicketActionRepository(ITicketActionRepository):
    """
    SQLAlchemy implementation of the ticket state automations touch.

    Tag association uses INSERT ... ON CONFLICT DO NOTHING so concurrent
    add_tag actions converge on a single row.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def savepoint(self) -> AsyncSessionTransaction:
        # A failed statement aborts the enclosing PostgreSQL transaction
        # unless it ran inside a SAVEPOINT
        return self._session.begin_nested()

    async def load_facts(self, ticket_id: str) -> Optional[TicketFacts]:
        ticket_uuid = _as_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        ticket = await self._session.get(TicketModel, ticket_uuid, populate_existing=True)
        if ticket is None:
            return None

        stmt = (
            select(TagModel.name)
            .join(TicketTagModel, TicketTagModel.tag_id == TagModel.id)
            .where(TicketTagModel.ticket_id == ticket_uuid)
            .order_by(TagModel.name)
        )
        result = await self._session.execute(stmt)

        return TicketFacts(
            sender_email=ticket.contact.email,
            subject=ticket.subject or "",
            channel=ticket.channel,
            priority=ticket.priority,
            status=ticket.status,
            mailbox_email=ticket.mailbox.email if ticket.mailbox else None,
            tags=tuple(result.scalars().all()),
        )

    async def find_tag(self, organization_id: str, name: str) -> Optional[str]:
        stmt = select(TagModel.id).where(
            TagModel.organization_id == organization_id,
            TagModel.name == name,
        )
        result = await self._session.execute(stmt)
        tag_id = result.scalar_one_or_none()
        return str(tag_id) if tag_id is not None else None

    async def get_or_create_tag(self, organization_id: str, name: str) -> str:
        tag_id = await self.find_tag(organization_id, name)
        if tag_id is not None:
            return tag_id

        stmt = insert_ignoring_conflicts(self._session, TagModel).values(
            id=uuid4(), organization_id=organization_id, name=name
        )
        await self._session.execute(stmt)

        # Re-read: a concurrent writer may have won the insert
        tag_id = await self.find_tag(organization_id, name)
        if tag_id is None:
            raise RepositoryException(f"Tag '{name}' could not be created")
        return tag_id

    async def attach_tag(self, ticket_id: str, tag_id: str) -> None:
        stmt = insert_ignoring_conflicts(self._session, TicketTagModel).values(
            ticket_id=_as_uuid(ticket_id), tag_id=_as_uuid(tag_id)
        )
        await self._session.execute(stmt)

    async def detach_tag(self, ticket_id: str, tag_id: str) -> None:
        stmt = delete(TicketTagModel).where(
            TicketTagModel.ticket_id == _as_uuid(ticket_id),
            TicketTagModel.tag_id == _as_uuid(tag_id),
        )
        await self._session.execute(stmt)

    async def update_ticket(self, ticket_id: str, **values: Any) -> None:
        unknown = set(values) - _UPDATABLE_TICKET_COLUMNS
        if unknown:
            raise RepositoryException(f"Ticket columns not writable by automations: {sorted(unknown)}")

        ticket_uuid = _as_uuid(ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {ticket_id}")

        stmt = update(TicketModel).where(TicketModel.id == ticket_uuid).values(**values)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise RepositoryException(f"Ticket {ticket_id} not found")
