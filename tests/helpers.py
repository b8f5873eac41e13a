"""Plain helpers shared by test modules."""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.tickets.models import TicketModel


def utc(*args) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


async def reload_ticket(session: AsyncSession, ticket_id) -> TicketModel:
    """Fetch a ticket bypassing the identity map."""
    return await session.get(TicketModel, ticket_id, populate_existing=True)
