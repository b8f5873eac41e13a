"""
Tests for ActionExecutor and AutomationService.

Tests:
- Each action variant against the real SQLAlchemy repository
- Idempotent tagging
- A failing action does not stop the batch
- Rules with invalid stored definitions are skipped
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from helpdesk.automation.application import ActionExecutor, AutomationService
from helpdesk.automation.domain import AutomationAction
from helpdesk.automation.infrastructure import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)
from helpdesk.automation.infrastructure.models import TagModel, TicketTagModel
from helpdesk.core import ResourceNotFoundException
from tests.helpers import reload_ticket


def action(type_, value):
    return AutomationAction(type=type_, value=value)


async def count_rows(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@asynccontextmanager
async def no_savepoint():
    yield


def mock_repository() -> MagicMock:
    repository = MagicMock()
    repository.savepoint = MagicMock(side_effect=no_savepoint)
    return repository


class TestActionExecutorWithDatabase:
    """Actions applied through SQLAlchemyTicketActionRepository."""

    @pytest.fixture
    async def ticket(self, org_factory, ticket_factory):
        await org_factory("org_1")
        return await ticket_factory("org_1")

    @pytest.fixture
    def repository(self, session):
        return SQLAlchemyTicketActionRepository(session)

    async def test_add_tag_twice_creates_one_association(self, session, ticket, repository):
        """Tagging is idempotent at the association level."""
        executor = ActionExecutor(repository)

        await executor.execute_actions("org_1", str(ticket.id), [action("add_tag", "vip")])
        await executor.execute_actions("org_1", str(ticket.id), [action("add_tag", "vip")])
        await session.commit()

        assert await count_rows(session, TagModel) == 1
        assert await count_rows(session, TicketTagModel) == 1

        facts = await repository.load_facts(str(ticket.id))
        assert facts.tags == ("vip",)

    async def test_remove_tag(self, session, ticket, repository):
        executor = ActionExecutor(repository)

        await executor.execute_actions("org_1", str(ticket.id), [action("add_tag", "vip")])
        applied = await executor.execute_actions("org_1", str(ticket.id), [action("remove_tag", "vip")])
        await session.commit()

        assert applied == 1
        assert await count_rows(session, TicketTagModel) == 0
        assert await count_rows(session, TagModel) == 1

    async def test_remove_unknown_tag_is_noop(self, ticket, repository):
        executor = ActionExecutor(repository)
        applied = await executor.execute_actions("org_1", str(ticket.id), [action("remove_tag", "ghost")])
        assert applied == 1

    async def test_tags_are_scoped_to_organization(self, session, org_factory, ticket_factory, ticket, repository):
        await org_factory("org_2")
        other = await ticket_factory("org_2")
        executor = ActionExecutor(repository)

        await executor.execute_actions("org_1", str(ticket.id), [action("add_tag", "vip")])
        await executor.execute_actions("org_2", str(other.id), [action("add_tag", "vip")])
        await session.commit()

        assert await count_rows(session, TagModel) == 2

    async def test_column_actions(self, session, ticket, repository):
        """set_priority, set_status and assign_to overwrite ticket columns."""
        executor = ActionExecutor(repository)

        applied = await executor.execute_actions("org_1", str(ticket.id), [
            action("set_priority", "urgent"),
            action("set_status", "pending"),
            action("assign_to", "user_9"),
        ])
        await session.commit()

        refreshed = await reload_ticket(session, ticket.id)
        assert applied == 3
        assert refreshed.priority == "urgent"
        assert refreshed.status == "pending"
        assert refreshed.assigned_to_id == "user_9"

    async def test_sql_error_rolls_back_only_that_action(self, session, ticket, repository):
        """A statement that fails in the database leaves earlier and later actions committed."""
        executor = ActionExecutor(repository)

        # priority is NOT NULL
        applied = await executor.execute_actions("org_1", str(ticket.id), [
            action("add_tag", "vip"),
            action("set_priority", None),
            action("assign_to", "user_2"),
        ])
        await session.commit()

        refreshed = await reload_ticket(session, ticket.id)
        assert applied == 2
        assert refreshed.priority == "normal"
        assert refreshed.assigned_to_id == "user_2"

        facts = await repository.load_facts(str(ticket.id))
        assert facts.tags == ("vip",)

    async def test_load_facts(self, ticket_factory, org_factory, repository):
        await org_factory("org_3")
        ticket = await ticket_factory(
            "org_3",
            sender_email="jane@acme.com",
            mailbox_email="support@example.com",
            subject=None,
            priority="high",
        )

        facts = await repository.load_facts(str(ticket.id))

        assert facts.sender_email == "jane@acme.com"
        assert facts.mailbox_email == "support@example.com"
        assert facts.subject == ""
        assert facts.priority == "high"
        assert facts.channel == "email"
        assert facts.tags == ()

    async def test_load_facts_missing_ticket(self, repository):
        assert await repository.load_facts("00000000-0000-0000-0000-000000000000") is None
        assert await repository.load_facts("not-a-uuid") is None


class TestActionExecutorIsolation:
    """Failure handling with a mocked repository."""

    async def test_failing_action_does_not_stop_batch(self):
        """An exception on one action is logged and the rest still run."""
        repository = mock_repository()
        repository.get_or_create_tag = AsyncMock(side_effect=RuntimeError("db down"))
        repository.attach_tag = AsyncMock()
        repository.update_ticket = AsyncMock()

        executor = ActionExecutor(repository)
        applied = await executor.execute_actions("org_1", "t1", [
            action("add_tag", "vip"),
            action("set_priority", "high"),
            action("assign_to", "user_1"),
        ])

        assert applied == 2
        assert repository.savepoint.call_count == 3
        repository.attach_tag.assert_not_awaited()
        assert repository.update_ticket.await_count == 2
        repository.update_ticket.assert_any_await("t1", priority="high")
        repository.update_ticket.assert_any_await("t1", assigned_to_id="user_1")

    async def test_actions_applied_in_order(self):
        repository = mock_repository()
        repository.update_ticket = AsyncMock()

        executor = ActionExecutor(repository)
        await executor.execute_actions("org_1", "t1", [
            action("set_status", "pending"),
            action("set_status", "closed"),
        ])

        calls = [c.kwargs["status"] for c in repository.update_ticket.await_args_list]
        assert calls == ["pending", "closed"]


class TestAutomationService:
    """Rule loading and trigger execution."""

    @staticmethod
    def record(conditions, actions, priority=0, name="rule"):
        return SimpleNamespace(
            id="a1", name=name, conditions=conditions, actions=actions, priority=priority
        )

    async def test_invalid_rules_are_skipped(self):
        """Rules that cannot be parsed are skipped, valid ones still load."""
        automation_repo = MagicMock()
        automation_repo.list_active = AsyncMock(return_value=[
            self.record({"fact": "priority", "operator": "bogus", "value": "x"}, [{"type": "add_tag", "value": "a"}]),
            self.record({"all": []}, [{"type": "explode", "value": "a"}]),
            self.record({"all": []}, [{"value": "missing type"}]),
            self.record({"all": []}, [{"type": "add_tag", "value": "ok"}], name="valid"),
        ])

        service = AutomationService(automation_repo, MagicMock())
        rules = await service.load_rules("org_1", "ticket_created")

        assert [r.name for r in rules] == ["valid"]

    async def test_no_rules_no_writes(self):
        automation_repo = MagicMock()
        automation_repo.list_active = AsyncMock(return_value=[])
        executor = MagicMock()
        executor.execute_actions = AsyncMock()

        service = AutomationService(automation_repo, MagicMock(), executor=executor)
        matched = await service.run_automations_for_ticket("org_1", "t1", MagicMock(), "ticket_created")

        assert matched == []
        executor.execute_actions.assert_not_awaited()

    async def test_run_for_missing_ticket_raises(self):
        ticket_repo = MagicMock()
        ticket_repo.load_facts = AsyncMock(return_value=None)

        service = AutomationService(MagicMock(), ticket_repo)
        with pytest.raises(ResourceNotFoundException):
            await service.run_for_ticket_id("org_1", "t1", "ticket_created")

    async def test_only_active_rules_for_trigger_run(self, session, org_factory, ticket_factory):
        """Inactive rules and other triggers never fire."""
        await org_factory("org_1")
        ticket = await ticket_factory("org_1", priority="high")
        automations = SQLAlchemyAutomationRepository(session)

        await automations.create("org_1", {
            "name": "tag high", "trigger": "ticket_created", "priority": 1,
            "conditions": {"priority": {"equals": "high"}},
            "actions": [{"type": "add_tag", "value": "hot"}],
        })
        await automations.create("org_1", {
            "name": "inactive", "trigger": "ticket_created", "is_active": False,
            "conditions": {"all": []},
            "actions": [{"type": "add_tag", "value": "inactive"}],
        })
        await automations.create("org_1", {
            "name": "breach only", "trigger": "sla_breached",
            "conditions": {"all": []},
            "actions": [{"type": "add_tag", "value": "breached"}],
        })
        await automations.create("org_2", {
            "name": "other tenant", "trigger": "ticket_created",
            "conditions": {"all": []},
            "actions": [{"type": "add_tag", "value": "foreign"}],
        })
        await session.commit()

        tickets = SQLAlchemyTicketActionRepository(session)
        service = AutomationService(automations, tickets)
        matched = await service.run_for_ticket_id("org_1", str(ticket.id), "ticket_created")
        await session.commit()

        assert [a.value for a in matched] == ["hot"]
        facts = await tickets.load_facts(str(ticket.id))
        assert facts.tags == ("hot",)
