"""
Ticket Event Hooks (API Routes)
===============================

Called by the help-desk after it changed a ticket. Each hook keeps the SLA
columns in step and runs the matching automation trigger.

The SLA write is committed before automations run; an automation failure is
logged and never undoes it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.automation.application import ActionResponse, AutomationService
from helpdesk.automation.infrastructure import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)
from helpdesk.config import AutomationTrigger
from helpdesk.core import ResourceNotFoundException
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.api.dependencies import get_active_organization_id
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import PriorityChange, SLADeadlineService
from helpdesk.sla.domain import TicketSLASnapshot
from helpdesk.sla.infrastructure import SQLAlchemySLAConfigRepository, SQLAlchemyTicketSLARepository

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Ticket Events"])


class TicketEventResponse(BaseModel):
    """Outcome of a ticket hook."""
    ticket_id: str
    sla_updated: bool = False
    sla_first_response_due_at: Optional[str] = None
    matched_actions: List[ActionResponse] = []


class TicketHooks:
    """Wires the SLA and automation services onto one request session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tickets = SQLAlchemyTicketSLARepository(session)
        self.deadlines = SLADeadlineService(self.tickets, SQLAlchemySLAConfigRepository(session))
        self.automations = AutomationService(
            SQLAlchemyAutomationRepository(session),
            SQLAlchemyTicketActionRepository(session),
        )

    async def require_ticket(self, ticket_id: str, organization_id: str) -> TicketSLASnapshot:
        ticket = await self.tickets.get_snapshot(ticket_id)
        if ticket is None or ticket.organization_id != organization_id:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def run_trigger(self, organization_id: str, ticket_id: str, trigger: str) -> List[ActionResponse]:
        await self.session.commit()
        try:
            facts = await self.automations.load_ticket_facts(ticket_id)
            if facts is None:
                return []
            matched = await self.automations.run_automations_for_ticket(
                organization_id, ticket_id, facts, trigger
            )
            await self.session.commit()
        except Exception:
            logger.exception(
                "Automations failed",
                extra={"ticket_id": ticket_id, "trigger": trigger}
            )
            await self.session.rollback()
            return []
        return [ActionResponse(**action.to_dict()) for action in matched]


async def get_hooks(session: AsyncSession = Depends(get_session)) -> TicketHooks:
    return TicketHooks(session)


@router.post(
    "/{ticket_id}/events/created",
    response_model=TicketEventResponse,
    summary="Ticket created",
    description="Assigns the first-response deadline, then runs `ticket_created` automations."
)
async def ticket_created(
    ticket_id: str,
    organization_id: str = Depends(get_active_organization_id),
    hooks: TicketHooks = Depends(get_hooks)
):
    await hooks.require_ticket(ticket_id, organization_id)
    deadline = await hooks.deadlines.assign_initial_deadline(ticket_id, organization_id)
    matched = await hooks.run_trigger(organization_id, ticket_id, AutomationTrigger.TICKET_CREATED)
    return TicketEventResponse(
        ticket_id=ticket_id,
        sla_updated=deadline is not None,
        sla_first_response_due_at=deadline.isoformat() if deadline else None,
        matched_actions=matched,
    )


@router.post(
    "/{ticket_id}/events/replied",
    response_model=TicketEventResponse,
    summary="Agent replied",
    description="Records the first response (once), then runs `ticket_replied` automations."
)
async def ticket_replied(
    ticket_id: str,
    organization_id: str = Depends(get_active_organization_id),
    hooks: TicketHooks = Depends(get_hooks)
):
    await hooks.require_ticket(ticket_id, organization_id)
    stamped = await hooks.deadlines.record_first_response(ticket_id)
    matched = await hooks.run_trigger(organization_id, ticket_id, AutomationTrigger.TICKET_REPLIED)
    return TicketEventResponse(ticket_id=ticket_id, sla_updated=stamped, matched_actions=matched)


@router.post(
    "/{ticket_id}/events/priority-changed",
    response_model=TicketEventResponse,
    summary="Priority changed",
    description="Recomputes the deadline and clears warning/breach stamps unless already answered."
)
async def ticket_priority_changed(
    ticket_id: str,
    request: PriorityChange,
    organization_id: str = Depends(get_active_organization_id),
    hooks: TicketHooks = Depends(get_hooks)
):
    await hooks.require_ticket(ticket_id, organization_id)
    updated = await hooks.deadlines.recompute_on_priority_change(
        ticket_id, request.priority, organization_id
    )
    ticket = await hooks.tickets.get_snapshot(ticket_id)
    due_at = ticket.sla_first_response_due_at if ticket else None
    return TicketEventResponse(
        ticket_id=ticket_id,
        sla_updated=updated,
        sla_first_response_due_at=due_at.isoformat() if due_at else None,
    )


@router.post(
    "/{ticket_id}/events/status-changed",
    response_model=TicketEventResponse,
    summary="Status changed",
    description="Runs `status_changed` automations."
)
async def ticket_status_changed(
    ticket_id: str,
    organization_id: str = Depends(get_active_organization_id),
    hooks: TicketHooks = Depends(get_hooks)
):
    await hooks.require_ticket(ticket_id, organization_id)
    matched = await hooks.run_trigger(organization_id, ticket_id, AutomationTrigger.STATUS_CHANGED)
    return TicketEventResponse(ticket_id=ticket_id, matched_actions=matched)


# Export router
tickets_router = router
