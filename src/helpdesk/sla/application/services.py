"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: deadline bookkeeping and the periodic sweep are separate services
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations

Every SLA stamp on a ticket is written with a conditional update and acted
on only when the update affected a row, so concurrent sweeps or a reply
racing a sweep never double-notify.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional

from helpdesk.automation.application.services import AutomationService
from helpdesk.config import AutomationTrigger, settings
from helpdesk.sla.domain import (
    BusinessHoursConfig,
    SLACalculator,
    SLAPolicy,
    SLASweepResult,
    TicketSLASnapshot,
    add_business_minutes,
    default_business_hours,
    schedule_has_open_hours,
)
from helpdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

WARNING_TITLE = "SLA Expiring Soon"
BREACH_TITLE = "SLA Breached"


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketSLARepository(ABC):
    """Interface for the SLA columns of tickets."""

    @abstractmethod
    async def get_snapshot(self, ticket_id: str) -> Optional[TicketSLASnapshot]:
        """Get the SLA view of a ticket."""

    @abstractmethod
    async def set_deadline(self, ticket_id: str, due_at: Optional[datetime]) -> None:
        """Write the first-response deadline."""

    @abstractmethod
    async def reset_deadline(self, ticket_id: str, due_at: Optional[datetime]) -> bool:
        """
        Replace the deadline and clear warning/breach stamps, only while the
        ticket is unanswered. True if a row was updated.
        """

    @abstractmethod
    async def mark_first_response(self, ticket_id: str, at: datetime) -> bool:
        """Stamp first_response_at if unset. True if this call stamped it."""

    @abstractmethod
    async def find_warning_candidates(
        self,
        organization_id: str,
        now: datetime
    ) -> List[TicketSLASnapshot]:
        """Monitored tickets with a future deadline and no warning or breach yet."""

    @abstractmethod
    async def find_breach_candidates(
        self,
        organization_id: str,
        now: datetime
    ) -> List[TicketSLASnapshot]:
        """Monitored tickets whose deadline has passed and are not yet breached."""

    @abstractmethod
    async def stamp_warning(self, ticket_id: str, now: datetime) -> bool:
        """Conditionally stamp the warning. True if a row was updated."""

    @abstractmethod
    async def stamp_breach(self, ticket_id: str, now: datetime) -> bool:
        """Conditionally stamp the breach. True if a row was updated."""

    @abstractmethod
    async def list_organization_ids(self) -> List[str]:
        """Every tenant id."""

    @abstractmethod
    async def commit(self) -> None:
        """Commit the unit of work."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard uncommitted changes."""


class ISLAConfigRepository(ABC):
    """Interface for per-tenant SLA configuration."""

    @abstractmethod
    async def get_active_policy(self, organization_id: str, priority: str) -> Optional[SLAPolicy]:
        """First active policy for (tenant, priority)."""

    @abstractmethod
    async def list_policies(self, organization_id: str) -> List[SLAPolicy]:
        """All policies of a tenant."""

    @abstractmethod
    async def upsert_policy(self, policy: SLAPolicy) -> SLAPolicy:
        """Create or replace the policy for (tenant, priority)."""

    @abstractmethod
    async def get_business_hours(self, organization_id: str) -> Optional[BusinessHoursConfig]:
        """Stored business hours, or None when the tenant never configured them."""

    @abstractmethod
    async def upsert_business_hours(
        self,
        organization_id: str,
        config: BusinessHoursConfig
    ) -> BusinessHoursConfig:
        """Create or replace the tenant's business hours."""


# ========== Application Services ==========

class SLAConfigService:
    """Reads and writes tenant SLA configuration."""

    def __init__(self, config_repository: ISLAConfigRepository):
        self._config = config_repository

    async def get_business_hours(self, organization_id: str) -> BusinessHoursConfig:
        """Stored business hours, or the disabled default schedule."""
        return await self._config.get_business_hours(organization_id) or default_business_hours()

    async def update_business_hours(
        self,
        organization_id: str,
        config: BusinessHoursConfig
    ) -> BusinessHoursConfig:
        return await self._config.upsert_business_hours(organization_id, config)

    async def list_policies(self, organization_id: str) -> List[SLAPolicy]:
        return await self._config.list_policies(organization_id)

    async def upsert_policy(self, policy: SLAPolicy) -> SLAPolicy:
        return await self._config.upsert_policy(policy)


class SLADeadlineService:
    """
    First-response deadline bookkeeping.

    Computes deadlines from tenant policy and business hours, and keeps the
    ticket's SLA columns consistent when it is answered or re-prioritised.
    """

    def __init__(
        self,
        ticket_repository: ITicketSLARepository,
        config_repository: ISLAConfigRepository
    ):
        self._tickets = ticket_repository
        self._config = config_repository

    async def compute_deadline(
        self,
        organization_id: str,
        priority: str,
        created_at: datetime
    ) -> Optional[datetime]:
        """
        Deadline for a ticket of `priority` created at `created_at`.

        Returns:
            The deadline, or None when the tenant has no active policy for
            the priority (the ticket is then simply not SLA-tracked)
        """
        policy = await self._config.get_active_policy(organization_id, priority)
        if policy is None:
            return None

        business_hours = await self._config.get_business_hours(organization_id)
        if business_hours is None:
            business_hours = default_business_hours()

        if business_hours.is_enabled and not schedule_has_open_hours(business_hours.schedule):
            logger.warning(
                "Business hours enabled with no open day; deadline falls back to the walk bound",
                extra={"organization_id": organization_id, "priority": priority}
            )

        return add_business_minutes(
            created_at,
            policy.first_response_minutes,
            business_hours.schedule,
            business_hours.is_enabled,
        )

    async def assign_initial_deadline(
        self,
        ticket_id: str,
        organization_id: str
    ) -> Optional[datetime]:
        """
        Compute and store the deadline of a newly created ticket.

        Returns:
            The stored deadline (None when no policy applies)
        """
        ticket = await self._tickets.get_snapshot(ticket_id)
        if ticket is None:
            return None

        deadline = await self.compute_deadline(organization_id, ticket.priority, ticket.created_at)
        await self._tickets.set_deadline(ticket_id, deadline)
        return deadline

    async def record_first_response(self, ticket_id: str) -> bool:
        """
        Mark the ticket answered. Idempotent: only the first call stamps.

        Returns:
            True if this call set first_response_at
        """
        stamped = await self._tickets.mark_first_response(ticket_id, datetime.now(timezone.utc))
        if stamped:
            logger.info("First response recorded", extra={"ticket_id": ticket_id})
        return stamped

    async def recompute_on_priority_change(
        self,
        ticket_id: str,
        new_priority: str,
        organization_id: str
    ) -> bool:
        """
        Reset the deadline after a priority change.

        No-op for missing or already answered tickets. Otherwise the
        deadline is recomputed from the ticket's original creation time and
        warning/breach stamps are cleared in the same write.

        Returns:
            True if the ticket was updated
        """
        ticket = await self._tickets.get_snapshot(ticket_id)
        if ticket is None or ticket.is_answered:
            return False

        deadline = await self.compute_deadline(organization_id, new_priority, ticket.created_at)
        updated = await self._tickets.reset_deadline(ticket_id, deadline)

        if updated:
            logger.info(
                "SLA deadline recomputed",
                extra={
                    "ticket_id": ticket_id,
                    "priority": new_priority,
                    "due_at": deadline.isoformat() if deadline else None,
                }
            )
        return updated


class SLAMonitorService:
    """
    Periodic SLA sweep: warning pass then breach pass, per tenant.

    Safe to run often and concurrently: a ticket is counted, notified and
    automated only by the sweep whose conditional stamp took effect.
    Failures on one ticket are logged and never abort the sweep.
    """

    def __init__(
        self,
        ticket_repository: ITicketSLARepository,
        notifier: Any,
        automation_service: Optional[AutomationService] = None,
        warning_threshold: Optional[float] = None
    ):
        """
        Args:
            ticket_repository: SLA ticket data access
            notifier: Object with `notify(user_id, organization_id, title, body, data)`
                and `list_member_ids(organization_id)` (see notifications.services)
            automation_service: Runs `sla_breached` automations; skipped if None
            warning_threshold: Fraction of the window that triggers a warning
        """
        self._tickets = ticket_repository
        self._notifier = notifier
        self._automations = automation_service
        self._threshold = (
            settings.sla_warning_threshold if warning_threshold is None else warning_threshold
        )

    async def run_sweep(self, now: Optional[datetime] = None) -> SLASweepResult:
        """
        Process every tenant and sum their counts.

        A failure while processing one tenant is logged and the sweep moves
        on; failing to list tenants propagates.
        """
        now = now or datetime.now(timezone.utc)
        total = SLASweepResult()

        with log_latency(logger, "sla_sweep"):
            for organization_id in await self._tickets.list_organization_ids():
                try:
                    total = total + await self.process_organization(organization_id, now)
                except Exception:
                    logger.exception(
                        "SLA sweep failed for organization",
                        extra={"organization_id": organization_id}
                    )
                    await self._tickets.rollback()

        logger.info(
            "SLA sweep completed",
            extra={"warning_count": total.warning_count, "breached_count": total.breached_count}
        )
        return total

    async def process_organization(
        self,
        organization_id: str,
        now: Optional[datetime] = None
    ) -> SLASweepResult:
        """
        Run the warning and breach passes for one tenant.

        Returns:
            Number of warnings and breaches stamped by this call
        """
        now = now or datetime.now(timezone.utc)
        result = SLASweepResult()

        for ticket in await self._tickets.find_warning_candidates(organization_id, now):
            if await self._process_warning(ticket, now):
                result.warning_count += 1

        for ticket in await self._tickets.find_breach_candidates(organization_id, now):
            if await self._process_breach(ticket, now):
                result.breached_count += 1

        return result

    async def _process_warning(self, ticket: TicketSLASnapshot, now: datetime) -> bool:
        due_at = ticket.sla_first_response_due_at
        if not SLACalculator.should_warn(ticket.created_at, due_at, now, self._threshold):
            return False

        if not await self._stamp(self._tickets.stamp_warning, ticket, now):
            return False

        remaining = SLACalculator.remaining_minutes(due_at, now)
        await self._notify(
            ticket,
            WARNING_TITLE,
            f"{remaining} min remaining to respond: {ticket.display_subject}",
        )
        return True

    async def _process_breach(self, ticket: TicketSLASnapshot, now: datetime) -> bool:
        if not await self._stamp(self._tickets.stamp_breach, ticket, now):
            return False

        logger.warning(
            "First response SLA breached",
            extra={"ticket_id": ticket.id, "organization_id": ticket.organization_id}
        )

        if self._automations is not None:
            try:
                facts = await self._automations.load_ticket_facts(ticket.id)
                if facts is not None:
                    await self._automations.run_automations_for_ticket(
                        ticket.organization_id, ticket.id, facts, AutomationTrigger.SLA_BREACHED
                    )
                await self._tickets.commit()
            except Exception:
                logger.exception(
                    "SLA breach automations failed",
                    extra={"ticket_id": ticket.id}
                )
                await self._tickets.rollback()

        await self._notify(
            ticket,
            BREACH_TITLE,
            f"First response SLA breached for: {ticket.display_subject}",
        )
        return True

    async def _stamp(self, stamp, ticket: TicketSLASnapshot, now: datetime) -> bool:
        """Apply a conditional stamp and commit it on its own."""
        try:
            stamped = await stamp(ticket.id, now)
            if stamped:
                await self._tickets.commit()
            return stamped
        except Exception:
            logger.exception("Failed to stamp SLA state", extra={"ticket_id": ticket.id})
            await self._tickets.rollback()
            return False

    async def _notify(self, ticket: TicketSLASnapshot, title: str, body: str) -> None:
        """Notify the assignee, or every tenant member when unassigned."""
        try:
            if ticket.assigned_to_id:
                recipients = [ticket.assigned_to_id]
            else:
                recipients = await self._notifier.list_member_ids(ticket.organization_id)

            for user_id in recipients:
                await self._notifier.notify(
                    user_id,
                    ticket.organization_id,
                    title,
                    body,
                    {"conversationId": ticket.id},
                )
            await self._tickets.commit()
        except Exception:
            logger.exception(
                "SLA notification failed",
                extra={"ticket_id": ticket.id, "title": title}
            )
            await self._tickets.rollback()
