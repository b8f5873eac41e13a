"""
Shared pytest fixtures for the help-desk SLA test suite.

Database tests run against an in-memory SQLite database (aiosqlite) with
the full schema created per test.
"""

from typing import Optional
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import helpdesk.models  # noqa: F401
from helpdesk.infrastructure.database import Base
from helpdesk.shared.infrastructure.models import MemberModel, OrganizationModel
from helpdesk.sla.domain import DEFAULT_SCHEDULE
from helpdesk.sla.infrastructure.models import BusinessHoursModel, SLAPolicyModel
from helpdesk.tickets.models import ContactModel, MailboxModel, TicketModel


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def org_factory(session):
    async def create(organization_id: str = "org_1", members: tuple = ()) -> OrganizationModel:
        org = OrganizationModel(id=organization_id, name=f"Org {organization_id}")
        session.add(org)
        for user_id in members:
            session.add(MemberModel(organization_id=organization_id, user_id=user_id))
        await session.commit()
        return org
    return create


@pytest.fixture
def ticket_factory(session):
    async def create(
        organization_id: str = "org_1",
        sender_email: str = "customer@example.com",
        mailbox_email: Optional[str] = None,
        **fields
    ) -> TicketModel:
        contact = ContactModel(organization_id=organization_id, email=sender_email)
        mailbox = None
        if mailbox_email:
            mailbox = MailboxModel(organization_id=organization_id, email=mailbox_email)

        fields.setdefault("subject", "Cannot log in")
        ticket = TicketModel(
            organization_id=organization_id,
            contact=contact,
            mailbox=mailbox,
            **fields
        )
        session.add(ticket)
        await session.commit()
        return ticket
    return create


@pytest.fixture
def policy_factory(session):
    async def create(
        organization_id: str = "org_1",
        priority: str = "normal",
        first_response_minutes: int = 60,
        is_active: bool = True
    ) -> SLAPolicyModel:
        policy = SLAPolicyModel(
            organization_id=organization_id,
            priority=priority,
            first_response_minutes=first_response_minutes,
            is_active=is_active,
        )
        session.add(policy)
        await session.commit()
        return policy
    return create


@pytest.fixture
def business_hours_factory(session):
    async def create(organization_id: str = "org_1", is_enabled: bool = True, schedule=None) -> BusinessHoursModel:
        days = schedule if schedule is not None else DEFAULT_SCHEDULE
        model = BusinessHoursModel(
            organization_id=organization_id,
            is_enabled=is_enabled,
            schedule=[day.model_dump() for day in days],
        )
        session.add(model)
        await session.commit()
        return model
    return create


# ============================================================================
# Mocks
# ============================================================================

@pytest.fixture
def mock_notifier():
    """Notifier double recording notify() calls."""
    notifier = AsyncMock()
    notifier.list_member_ids = AsyncMock(return_value=[])
    notifier.notify = AsyncMock()
    return notifier
