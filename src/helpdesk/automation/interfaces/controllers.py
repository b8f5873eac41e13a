"""
Automation Controllers (API Routes)
===================================

FastAPI routes for managing automation rules and running them on demand.

Controllers are thin - they delegate to repositories and services.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.automation.application import (
    ActionResponse,
    AutomationCreate,
    AutomationListResponse,
    AutomationResponse,
    AutomationService,
    AutomationUpdate,
    RunAutomationsRequest,
    RunAutomationsResponse,
)
from helpdesk.automation.infrastructure import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)
from helpdesk.core import ResourceNotFoundException
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.api.dependencies import get_active_organization_id
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.infrastructure import SQLAlchemyTicketSLARepository

logger = get_logger(__name__)
router = APIRouter(prefix="/automations", tags=["Automations"])


# ========== Example payloads for Swagger ==========

AUTOMATION_CREATE_EXAMPLE = {
    "name": "Tag refund requests",
    "trigger": "ticket_created",
    "conditions": {
        "all": [
            {"fact": "subject", "operator": "contains", "value": "refund"},
            {"not": {"fact": "tags", "operator": "arrayContains", "value": "billing"}}
        ]
    },
    "actions": [
        {"type": "add_tag", "value": "billing"},
        {"type": "set_priority", "value": "high"}
    ],
    "priority": 10
}


# ========== Dependencies ==========

async def get_automation_repository(
    session: AsyncSession = Depends(get_session)
) -> SQLAlchemyAutomationRepository:
    return SQLAlchemyAutomationRepository(session)


async def get_automation_service(
    session: AsyncSession = Depends(get_session)
) -> AutomationService:
    return AutomationService(
        SQLAlchemyAutomationRepository(session),
        SQLAlchemyTicketActionRepository(session),
    )


async def _require(repository: SQLAlchemyAutomationRepository, organization_id: str, automation_id: str):
    model = await repository.get(organization_id, automation_id)
    if model is None:
        raise ResourceNotFoundException("Automation", automation_id)
    return model


def _serialize(payload) -> dict:
    return payload.model_dump(exclude_unset=True, exclude_none=True)


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=AutomationListResponse,
    summary="List automations"
)
async def list_automations(
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    items = await repository.list(organization_id)
    return AutomationListResponse(items=[AutomationResponse.model_validate(m) for m in items])


@router.post(
    "",
    response_model=AutomationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an automation",
    description="""
    Conditions are validated on write: groups `all` / `any` / `not`, leaves
    `{"fact", "operator", "value"}` or the shorthand `{"priority": {"equals": "high"}}`.
    Unknown operators or malformed trees are rejected with 422.
    """,
    openapi_extra={"requestBody": {"content": {"application/json": {"example": AUTOMATION_CREATE_EXAMPLE}}}}
)
async def create_automation(
    request: AutomationCreate,
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    model = await repository.create(organization_id, request.model_dump())
    logger.info(
        "Automation created",
        extra={"organization_id": organization_id, "automation_id": str(model.id), "trigger": model.trigger}
    )
    return AutomationResponse.model_validate(model)


@router.get(
    "/{automation_id}",
    response_model=AutomationResponse,
    summary="Get an automation",
    responses={404: {"description": "Automation not found"}}
)
async def get_automation(
    automation_id: str,
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    model = await _require(repository, organization_id, automation_id)
    return AutomationResponse.model_validate(model)


@router.patch(
    "/{automation_id}",
    response_model=AutomationResponse,
    summary="Update an automation",
    responses={404: {"description": "Automation not found"}}
)
async def update_automation(
    automation_id: str,
    request: AutomationUpdate,
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    model = await repository.update(organization_id, automation_id, _serialize(request))
    if model is None:
        raise ResourceNotFoundException("Automation", automation_id)
    return AutomationResponse.model_validate(model)


@router.delete(
    "/{automation_id}",
    summary="Delete an automation",
    responses={404: {"description": "Automation not found"}}
)
async def delete_automation(
    automation_id: str,
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    if not await repository.delete(organization_id, automation_id):
        raise ResourceNotFoundException("Automation", automation_id)
    return {"success": True}


@router.post(
    "/{automation_id}/toggle",
    response_model=AutomationResponse,
    summary="Flip is_active",
    responses={404: {"description": "Automation not found"}}
)
async def toggle_automation(
    automation_id: str,
    organization_id: str = Depends(get_active_organization_id),
    repository: SQLAlchemyAutomationRepository = Depends(get_automation_repository)
):
    model = await _require(repository, organization_id, automation_id)
    model = await repository.update(organization_id, automation_id, {"is_active": not model.is_active})
    return AutomationResponse.model_validate(model)


@router.post(
    "/tickets/{ticket_id}/run",
    response_model=RunAutomationsResponse,
    summary="Run a trigger's automations against a ticket",
    responses={404: {"description": "Ticket not found"}}
)
async def run_automations(
    ticket_id: str,
    request: RunAutomationsRequest,
    organization_id: str = Depends(get_active_organization_id),
    session: AsyncSession = Depends(get_session),
    service: AutomationService = Depends(get_automation_service)
):
    ticket = await SQLAlchemyTicketSLARepository(session).get_snapshot(ticket_id)
    if ticket is None or ticket.organization_id != organization_id:
        raise ResourceNotFoundException("Ticket", ticket_id)

    matched = await service.run_for_ticket_id(organization_id, ticket_id, request.trigger)
    return RunAutomationsResponse(
        matched_actions=[ActionResponse(**action.to_dict()) for action in matched]
    )


# Export router
automation_router = router
