"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA configuration and the scheduled SLA check.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.automation.application import AutomationService
from helpdesk.automation.infrastructure import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)
from helpdesk.infrastructure.database import get_session
from helpdesk.notifications import NotificationService
from helpdesk.shared.api.dependencies import get_active_organization_id, verify_cron_secret
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import (
    BusinessHoursResponse,
    BusinessHoursUpdate,
    PolicyListResponse,
    PolicyResponse,
    PolicyUpsert,
    SLAConfigService,
    SLAMonitorService,
    SweepResponse,
)
from helpdesk.sla.infrastructure import SQLAlchemySLAConfigRepository, SQLAlchemyTicketSLARepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Example payloads for Swagger ==========

BUSINESS_HOURS_EXAMPLE = {
    "organization_id": "org_123",
    "is_enabled": True,
    "schedule": [
        {"day_of_week": 0, "is_enabled": False, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 1, "is_enabled": True, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 2, "is_enabled": True, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 3, "is_enabled": True, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 4, "is_enabled": True, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 5, "is_enabled": True, "start_time": "09:00", "end_time": "17:00"},
        {"day_of_week": 6, "is_enabled": False, "start_time": "09:00", "end_time": "17:00"},
    ]
}

SWEEP_RESPONSE_EXAMPLE = {"success": True, "warningCount": 2, "breachedCount": 1}


# ========== Dependencies ==========

def build_monitor_service(session: AsyncSession) -> SLAMonitorService:
    """Wire an SLA monitor onto one database session."""
    automation_service = AutomationService(
        SQLAlchemyAutomationRepository(session),
        SQLAlchemyTicketActionRepository(session),
    )
    return SLAMonitorService(
        SQLAlchemyTicketSLARepository(session),
        NotificationService(session),
        automation_service,
    )


async def get_config_service(
    session: AsyncSession = Depends(get_session)
) -> SLAConfigService:
    return SLAConfigService(SQLAlchemySLAConfigRepository(session))


async def get_monitor_service(
    session: AsyncSession = Depends(get_session)
) -> SLAMonitorService:
    return build_monitor_service(session)


# ========== Route Handlers ==========

@router.get(
    "/business-hours",
    response_model=BusinessHoursResponse,
    summary="Get business hours",
    description="""
    Weekly business hours of the active organization.

    Organizations that never configured hours get Mon-Fri 09:00-17:00 UTC
    with `is_enabled = false`, i.e. deadlines count wall-clock minutes.
    """,
    responses={200: {"content": {"application/json": {"example": BUSINESS_HOURS_EXAMPLE}}}}
)
async def get_business_hours(
    organization_id: str = Depends(get_active_organization_id),
    service: SLAConfigService = Depends(get_config_service)
):
    config = await service.get_business_hours(organization_id)
    return BusinessHoursResponse.from_domain(organization_id, config)


@router.put(
    "/business-hours",
    response_model=BusinessHoursResponse,
    summary="Replace business hours",
    description="""
    Replace the weekly schedule. It must contain exactly one entry per day
    (0 = Sunday .. 6 = Saturday), times as `HH:MM`, and enabled days must
    open before they close. Existing deadlines are not recomputed.
    """
)
async def update_business_hours(
    request: BusinessHoursUpdate,
    organization_id: str = Depends(get_active_organization_id),
    service: SLAConfigService = Depends(get_config_service)
):
    config = await service.update_business_hours(organization_id, request.to_domain())
    logger.info(
        "Business hours updated",
        extra={"organization_id": organization_id, "is_enabled": config.is_enabled}
    )
    return BusinessHoursResponse.from_domain(organization_id, config)


@router.get(
    "/policies",
    response_model=PolicyListResponse,
    summary="List SLA policies"
)
async def list_policies(
    organization_id: str = Depends(get_active_organization_id),
    service: SLAConfigService = Depends(get_config_service)
):
    policies = await service.list_policies(organization_id)
    return PolicyListResponse(items=[PolicyResponse.from_domain(p) for p in policies])


@router.put(
    "/policies",
    response_model=PolicyResponse,
    summary="Create or replace the policy for a priority"
)
async def upsert_policy(
    request: PolicyUpsert,
    organization_id: str = Depends(get_active_organization_id),
    service: SLAConfigService = Depends(get_config_service)
):
    policy = await service.upsert_policy(request.to_domain(organization_id))
    logger.info(
        "SLA policy upserted",
        extra={
            "organization_id": organization_id,
            "priority": policy.priority,
            "first_response_minutes": policy.first_response_minutes,
        }
    )
    return PolicyResponse.from_domain(policy)


@router.api_route(
    "/check",
    methods=["GET", "POST"],
    response_model=SweepResponse,
    summary="Run the SLA sweep",
    description="""
    Stamp SLA warnings and breaches across all organizations and notify
    agents. Meant for an external scheduler; safe to call repeatedly.

    Requires `Authorization: Bearer <CRON_SECRET>` when a secret is configured.
    """,
    dependencies=[Depends(verify_cron_secret)],
    responses={
        200: {"content": {"application/json": {"example": SWEEP_RESPONSE_EXAMPLE}}},
        401: {"description": "Missing or wrong cron secret"},
        500: {"description": "Sweep could not run"},
    }
)
async def run_sla_check(
    monitor: SLAMonitorService = Depends(get_monitor_service)
):
    try:
        result = await monitor.run_sweep()
    except Exception:
        logger.exception("SLA check failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"}
        )

    return SweepResponse(success=True, **result.to_dict())


# Export router
sla_router = router
