"""
Automation Application Services
===============================

Load tenant rules, evaluate them against ticket facts and apply the
matched actions.

Following SOLID principles:
- Single Responsibility: rule loading/evaluation and action execution are separate
- Dependency Inversion: depend on repository interfaces, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, List, Optional, Sequence

from helpdesk.automation.domain import (
    AutomationAction,
    AutomationRule,
    TicketFacts,
    evaluate_automations,
    parse_condition,
)
from helpdesk.config import ActionType
from helpdesk.core import InvalidConditionException, ResourceNotFoundException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAutomationRepository(ABC):
    """Interface for automation rule data access."""

    @abstractmethod
    async def list_active(self, organization_id: str, trigger: str) -> List[Any]:
        """Active rules of a tenant for one trigger."""

    @abstractmethod
    async def list(self, organization_id: str) -> List[Any]:
        """All rules of a tenant, newest first."""

    @abstractmethod
    async def get(self, organization_id: str, automation_id: str) -> Optional[Any]:
        """Get a rule by id within a tenant."""

    @abstractmethod
    async def create(self, organization_id: str, data: dict) -> Any:
        """Create a rule."""

    @abstractmethod
    async def update(self, organization_id: str, automation_id: str, changes: dict) -> Optional[Any]:
        """Apply partial changes to a rule."""

    @abstractmethod
    async def delete(self, organization_id: str, automation_id: str) -> bool:
        """Delete a rule; False if it did not exist."""


class ITicketActionRepository(ABC):
    """Interface for the ticket and tag state automations read and mutate."""

    @abstractmethod
    def savepoint(self) -> AsyncContextManager[Any]:
        """Nested transaction that discards only its own writes on error."""

    @abstractmethod
    async def load_facts(self, ticket_id: str) -> Optional[TicketFacts]:
        """Build a facts snapshot for a ticket, or None if it does not exist."""

    @abstractmethod
    async def get_or_create_tag(self, organization_id: str, name: str) -> str:
        """Id of the tenant tag with this name, creating it if needed."""

    @abstractmethod
    async def find_tag(self, organization_id: str, name: str) -> Optional[str]:
        """Id of the tenant tag with this name, if any."""

    @abstractmethod
    async def attach_tag(self, ticket_id: str, tag_id: str) -> None:
        """Associate a tag with a ticket; a no-op if already associated."""

    @abstractmethod
    async def detach_tag(self, ticket_id: str, tag_id: str) -> None:
        """Remove a tag association; a no-op if absent."""

    @abstractmethod
    async def update_ticket(self, ticket_id: str, **values: Any) -> None:
        """Overwrite ticket columns."""


# ========== Application Services ==========

class ActionExecutor:
    """
    Applies matched automation actions to a ticket.

    Each action runs in its own savepoint; a failing action is rolled back and
    logged, and the rest of the batch still runs.
    """

    def __init__(self, ticket_repository: ITicketActionRepository):
        self._tickets = ticket_repository

    async def execute_actions(
        self,
        organization_id: str,
        ticket_id: str,
        actions: Sequence[AutomationAction]
    ) -> int:
        """
        Apply actions in order.

        Returns:
            Number of actions applied without error
        """
        applied = 0
        for action in actions:
            try:
                async with self._tickets.savepoint():
                    await self._apply(organization_id, ticket_id, action)
                applied += 1
            except Exception:
                logger.exception(
                    "Failed to execute automation action",
                    extra={
                        "ticket_id": ticket_id,
                        "organization_id": organization_id,
                        "action_type": action.type,
                    }
                )
        return applied

    async def _apply(self, organization_id: str, ticket_id: str, action: AutomationAction) -> None:
        if action.type == ActionType.ADD_TAG:
            tag_id = await self._tickets.get_or_create_tag(organization_id, action.value)
            await self._tickets.attach_tag(ticket_id, tag_id)
        elif action.type == ActionType.REMOVE_TAG:
            tag_id = await self._tickets.find_tag(organization_id, action.value)
            if tag_id is not None:
                await self._tickets.detach_tag(ticket_id, tag_id)
        elif action.type == ActionType.SET_PRIORITY:
            await self._tickets.update_ticket(ticket_id, priority=action.value)
        elif action.type == ActionType.SET_STATUS:
            await self._tickets.update_ticket(ticket_id, status=action.value)
        elif action.type == ActionType.ASSIGN_TO:
            await self._tickets.update_ticket(ticket_id, assigned_to_id=action.value)
        else:
            raise ValueError(f"unsupported action type '{action.type}'")


class AutomationService:
    """
    Runs the automations configured for a trigger against one ticket.
    """

    def __init__(
        self,
        automation_repository: IAutomationRepository,
        ticket_repository: ITicketActionRepository,
        executor: Optional[ActionExecutor] = None
    ):
        self._automations = automation_repository
        self._tickets = ticket_repository
        self._executor = executor or ActionExecutor(ticket_repository)

    async def load_ticket_facts(self, ticket_id: str) -> Optional[TicketFacts]:
        return await self._tickets.load_facts(ticket_id)

    async def load_rules(self, organization_id: str, trigger: str) -> List[AutomationRule]:
        """
        Active rules for a tenant and trigger, parsed for evaluation.

        Rules whose stored conditions or actions cannot be interpreted are
        skipped and logged.
        """
        rules = []
        for record in await self._automations.list_active(organization_id, trigger):
            try:
                rules.append(AutomationRule(
                    id=str(record.id),
                    name=record.name,
                    conditions=parse_condition(record.conditions),
                    actions=[AutomationAction.from_dict(a) for a in record.actions],
                    priority=record.priority,
                ))
            except (InvalidConditionException, ValueError, KeyError, TypeError) as e:
                logger.error(
                    "Skipping automation with invalid definition",
                    extra={"automation_id": str(record.id), "error": str(e)}
                )
        return rules

    async def run_automations_for_ticket(
        self,
        organization_id: str,
        ticket_id: str,
        facts: TicketFacts,
        trigger: str
    ) -> List[AutomationAction]:
        """
        Evaluate the trigger's rules and apply matched actions.

        No writes happen when the tenant has no active rules for the trigger
        or none of them match.

        Returns:
            The matched actions
        """
        rules = await self.load_rules(organization_id, trigger)
        if not rules:
            return []

        matched = evaluate_automations(facts, rules)

        if matched:
            logger.info(
                "Automation actions matched",
                extra={
                    "ticket_id": ticket_id,
                    "organization_id": organization_id,
                    "trigger": trigger,
                    "action_count": len(matched),
                }
            )
            await self._executor.execute_actions(organization_id, ticket_id, matched)

        return matched

    async def run_for_ticket_id(
        self,
        organization_id: str,
        ticket_id: str,
        trigger: str
    ) -> List[AutomationAction]:
        """
        Load facts for a ticket and run the trigger's automations.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        facts = await self.load_ticket_facts(ticket_id)
        if facts is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return await self.run_automations_for_ticket(organization_id, ticket_id, facts, trigger)
