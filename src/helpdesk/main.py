"""
Help-Desk SLA Service - Main Application
========================================

SLA deadlines and ticket automations for a multi-tenant help-desk.

Modules:
- SLA: Business-hours deadlines, warning/breach sweep, notifications
- Automation: Tenant rules evaluated against ticket facts
- Ticket events: Hooks the help-desk calls after changing a ticket

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and pure calendar/rule logic
- Infrastructure: Database, push notifications, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk.config import settings
from helpdesk.core import ApplicationException

# Infrastructure
from helpdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from helpdesk.notifications import close_push_client
from helpdesk.sla.infrastructure import SLAScheduler

# Module Routers
from helpdesk.automation.interfaces import automation_router
from helpdesk.sla.interfaces import build_monitor_service, sla_router
from helpdesk.tickets.controllers import tickets_router

# Middleware
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

# Logging
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)

sla_scheduler = None


async def sla_sweep_job() -> None:
    """Background SLA sweep on a fresh session."""
    try:
        async with get_session_context() as session:
            result = await build_monitor_service(session).run_sweep()
        logger.info("Scheduled SLA sweep finished", extra=result.to_dict())
    except Exception:
        logger.exception("Scheduled SLA sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Start SLA scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Close push client
    3. Close database connections
    """
    global sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Help-Desk SLA Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use Alembic in production)
    logger.info("Creating database tables")
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    sla_scheduler = SLAScheduler(interval_seconds=settings.sla_sweep_interval)
    await sla_scheduler.start(sla_sweep_job)

    app.state.settings = settings

    logger.info("Help-Desk SLA Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Help-Desk SLA Service")

    if sla_scheduler:
        await sla_scheduler.stop()

    await close_push_client()
    await close_database()

    logger.info("Help-Desk SLA Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Help-Desk SLA API",
    description="""
    ## SLA Deadlines & Ticket Automations

    ---

    ### SLA Module

    **Endpoints:**
    - `GET/PUT /sla/business-hours` - Weekly business hours of the organization
    - `GET/PUT /sla/policies` - First-response minutes per priority
    - `POST /sla/check` - Run the warning/breach sweep (cron secret)

    **Features:**
    - Deadlines counted in business minutes (or wall-clock when disabled)
    - "SLA Expiring Soon" once 75% of the window has elapsed
    - "SLA Breached" once the deadline has passed, plus `sla_breached` automations
    - Each warning and breach is stamped exactly once, even under concurrent sweeps

    ---

    ### Automation Module

    **Endpoints:**
    - `GET/POST /automations`, `GET/PATCH/DELETE /automations/{id}`
    - `POST /automations/{id}/toggle`
    - `POST /automations/tickets/{ticket_id}/run`

    **Triggers:** `ticket_created`, `ticket_replied`, `status_changed`, `sla_breached`

    **Actions:** `add_tag`, `remove_tag`, `set_priority`, `set_status`, `assign_to`

    ---

    ### Ticket Events

    - `POST /tickets/{id}/events/created|replied|priority-changed|status-changed`

    All tenant-scoped routes require the `X-Organization-ID` header.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(sla_router)
app.include_router(automation_router)
app.include_router(tickets_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {"sla_scheduler": "running"}
                }
            }
        }
    }
})
async def health_check():
    """Health check endpoint for load balancers and orchestrators."""
    checks = {
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
