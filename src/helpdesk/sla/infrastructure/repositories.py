"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
SLA configuration and the SLA columns of tickets. Stamps are conditional
UPDATEs whose rowcount tells the caller whether it won.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import CLOSED_STATUSES
from helpdesk.shared.infrastructure.models import OrganizationModel
from helpdesk.sla.application.services import ISLAConfigRepository, ITicketSLARepository
from helpdesk.sla.domain import BusinessHoursConfig, DaySchedule, SLAPolicy, TicketSLASnapshot
from helpdesk.sla.infrastructure.models import BusinessHoursModel, SLAPolicyModel
from helpdesk.tickets.models import TicketModel


def _as_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _to_snapshot(model: TicketModel) -> TicketSLASnapshot:
    return TicketSLASnapshot(
        id=str(model.id),
        organization_id=model.organization_id,
        created_at=model.created_at,
        priority=model.priority,
        status=model.status,
        subject=model.subject,
        assigned_to_id=model.assigned_to_id,
        first_response_at=model.first_response_at,
        sla_first_response_due_at=model.sla_first_response_due_at,
        sla_warning_notified_at=model.sla_warning_notified_at,
        sla_breached_at=model.sla_breached_at,
        deleted_at=model.deleted_at,
    )


def _to_policy(model: SLAPolicyModel) -> SLAPolicy:
    return SLAPolicy(
        id=str(model.id),
        organization_id=model.organization_id,
        priority=model.priority,
        first_response_minutes=model.first_response_minutes,
        is_active=model.is_active,
    )


class SQLAlchemyTicketSLARepository(ITicketSLARepository):
    """
    SQLAlchemy implementation of the ticket SLA repository.

    Writes bypass the identity map (synchronize_session=False); reads use
    populate_existing so they always reflect the database.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def _monitored(self, organization_id: str) -> list:
        return [
            TicketModel.organization_id == organization_id,
            TicketModel.first_response_at.is_(None),
            TicketModel.sla_breached_at.is_(None),
            TicketModel.deleted_at.is_(None),
            TicketModel.status.not_in(CLOSED_STATUSES),
        ]

    async def _conditional_update(self, ticket_id: str, conditions: list, **values) -> bool:
        ticket_uuid = _as_uuid(ticket_id)
        if ticket_uuid is None:
            return False

        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_uuid, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def get_snapshot(self, ticket_id: str) -> Optional[TicketSLASnapshot]:
        ticket_uuid = _as_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        model = await self._session.get(TicketModel, ticket_uuid, populate_existing=True)
        return _to_snapshot(model) if model else None

    async def set_deadline(self, ticket_id: str, due_at: Optional[datetime]) -> None:
        await self._conditional_update(ticket_id, [], sla_first_response_due_at=due_at)

    async def reset_deadline(self, ticket_id: str, due_at: Optional[datetime]) -> bool:
        return await self._conditional_update(
            ticket_id,
            [TicketModel.first_response_at.is_(None)],
            sla_first_response_due_at=due_at,
            sla_warning_notified_at=None,
            sla_breached_at=None,
        )

    async def mark_first_response(self, ticket_id: str, at: datetime) -> bool:
        return await self._conditional_update(
            ticket_id,
            [TicketModel.first_response_at.is_(None)],
            first_response_at=at,
        )

    async def find_warning_candidates(
        self,
        organization_id: str,
        now: datetime
    ) -> List[TicketSLASnapshot]:
        stmt = (
            select(TicketModel)
            .where(
                *self._monitored(organization_id),
                TicketModel.sla_first_response_due_at.is_not(None),
                TicketModel.sla_first_response_due_at > now,
                TicketModel.sla_warning_notified_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [_to_snapshot(model) for model in result.scalars().unique().all()]

    async def find_breach_candidates(
        self,
        organization_id: str,
        now: datetime
    ) -> List[TicketSLASnapshot]:
        stmt = (
            select(TicketModel)
            .where(
                *self._monitored(organization_id),
                TicketModel.sla_first_response_due_at < now,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [_to_snapshot(model) for model in result.scalars().unique().all()]

    async def stamp_warning(self, ticket_id: str, now: datetime) -> bool:
        return await self._conditional_update(
            ticket_id,
            [
                TicketModel.sla_warning_notified_at.is_(None),
                TicketModel.sla_breached_at.is_(None),
                TicketModel.first_response_at.is_(None),
                TicketModel.sla_first_response_due_at > now,
            ],
            sla_warning_notified_at=now,
        )

    async def stamp_breach(self, ticket_id: str, now: datetime) -> bool:
        return await self._conditional_update(
            ticket_id,
            [
                TicketModel.sla_breached_at.is_(None),
                TicketModel.first_response_at.is_(None),
                TicketModel.sla_first_response_due_at < now,
            ],
            sla_breached_at=now,
        )

    async def list_organization_ids(self) -> List[str]:
        result = await self._session.execute(
            select(OrganizationModel.id).order_by(OrganizationModel.created_at)
        )
        return list(result.scalars().all())

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


class SQLAlchemySLAConfigRepository(ISLAConfigRepository):
    """SQLAlchemy implementation of tenant SLA configuration."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_policy_model(self, organization_id: str, priority: str) -> Optional[SLAPolicyModel]:
        stmt = select(SLAPolicyModel).where(
            SLAPolicyModel.organization_id == organization_id,
            SLAPolicyModel.priority == priority,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_policy(self, organization_id: str, priority: str) -> Optional[SLAPolicy]:
        stmt = (
            select(SLAPolicyModel)
            .where(
                SLAPolicyModel.organization_id == organization_id,
                SLAPolicyModel.priority == priority,
                SLAPolicyModel.is_active.is_(True),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_policy(model) if model else None

    async def list_policies(self, organization_id: str) -> List[SLAPolicy]:
        stmt = (
            select(SLAPolicyModel)
            .where(SLAPolicyModel.organization_id == organization_id)
            .order_by(SLAPolicyModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [_to_policy(model) for model in result.scalars().all()]

    async def upsert_policy(self, policy: SLAPolicy) -> SLAPolicy:
        model = await self._get_policy_model(policy.organization_id, policy.priority)
        if model is None:
            model = SLAPolicyModel(
                organization_id=policy.organization_id,
                priority=policy.priority,
            )
            self._session.add(model)

        model.first_response_minutes = policy.first_response_minutes
        model.is_active = policy.is_active
        await self._session.flush()
        return _to_policy(model)

    async def _get_business_hours_model(self, organization_id: str) -> Optional[BusinessHoursModel]:
        stmt = select(BusinessHoursModel).where(BusinessHoursModel.organization_id == organization_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_business_hours(self, organization_id: str) -> Optional[BusinessHoursConfig]:
        model = await self._get_business_hours_model(organization_id)
        if model is None:
            return None

        # Validated on write; stored rows are trusted as-is
        return BusinessHoursConfig.model_construct(
            is_enabled=model.is_enabled,
            schedule=[DaySchedule.model_construct(**day) for day in model.schedule],
        )

    async def upsert_business_hours(
        self,
        organization_id: str,
        config: BusinessHoursConfig
    ) -> BusinessHoursConfig:
        model = await self._get_business_hours_model(organization_id)
        if model is None:
            model = BusinessHoursModel(organization_id=organization_id)
            self._session.add(model)

        model.is_enabled = config.is_enabled
        model.schedule = [day.model_dump() for day in config.schedule]
        await self._session.flush()
        return config
