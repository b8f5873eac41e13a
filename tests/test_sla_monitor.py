"""
Tests for SLAMonitorService.

Tests:
- Warning pass at the 75% threshold
- Breach pass stamps once, runs sla_breached automations once, notifies
- Recipient selection (assignee vs. every member)
- Exclusion of answered, closed, deleted and untracked tickets
- Failure isolation (notifications, stamps, organizations)
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from helpdesk.automation.application import AutomationService
from helpdesk.automation.infrastructure import (
    SQLAlchemyAutomationRepository,
    SQLAlchemyTicketActionRepository,
)
from helpdesk.notifications import NotificationModel, NotificationService
from helpdesk.sla.application import SLAMonitorService
from helpdesk.sla.application.services import BREACH_TITLE, WARNING_TITLE
from helpdesk.sla.domain import (
    DEFAULT_SCHEDULE,
    SLACalculator,
    SLASweepResult,
    TicketSLASnapshot,
    add_business_minutes,
    get_business_minutes_between,
)
from helpdesk.sla.infrastructure import SQLAlchemyTicketSLARepository
from tests.helpers import reload_ticket, utc

T0 = utc(2026, 3, 2, 9, 0)


class CountingAutomationService(AutomationService):
    """AutomationService that records how often a trigger ran."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.runs = []

    async def run_automations_for_ticket(self, organization_id, ticket_id, facts, trigger):
        self.runs.append((ticket_id, trigger))
        return await super().run_automations_for_ticket(organization_id, ticket_id, facts, trigger)


@pytest.fixture
def automation_service(session):
    return CountingAutomationService(
        SQLAlchemyAutomationRepository(session),
        SQLAlchemyTicketActionRepository(session),
    )


@pytest.fixture
def monitor(session, mock_notifier, automation_service):
    return SLAMonitorService(
        SQLAlchemyTicketSLARepository(session),
        mock_notifier,
        automation_service,
        warning_threshold=0.75,
    )


class TestSLACalculator:
    """Warning threshold arithmetic."""

    def test_warns_at_threshold(self):
        due = T0 + timedelta(minutes=100)
        assert SLACalculator.should_warn(T0, due, T0 + timedelta(minutes=75), 0.75) is True
        assert SLACalculator.should_warn(T0, due, T0 + timedelta(minutes=74), 0.75) is False

    def test_ratio_uses_wall_clock_with_business_hours(self):
        """The warning point is a wall-clock fraction even for business-hour deadlines."""
        created = utc(2026, 1, 2, 16, 0)
        due = add_business_minutes(created, 120, DEFAULT_SCHEDULE, True)
        sunday_night = utc(2026, 1, 4, 22, 0)

        assert due == utc(2026, 1, 5, 10, 0)
        assert get_business_minutes_between(created, sunday_night, DEFAULT_SCHEDULE, True) == 60
        assert SLACalculator.should_warn(created, due, sunday_night, 0.75) is True

    def test_empty_window_never_warns(self):
        assert SLACalculator.should_warn(T0, T0, T0 + timedelta(minutes=5), 0.75) is False

    def test_remaining_minutes(self):
        due = T0 + timedelta(minutes=25)
        assert SLACalculator.remaining_minutes(due, T0 + timedelta(seconds=30)) == 25
        assert SLACalculator.remaining_minutes(due, T0 + timedelta(minutes=30)) == 0

    def test_is_breached(self):
        assert SLACalculator.is_breached(T0, T0 + timedelta(seconds=1)) is True
        assert SLACalculator.is_breached(T0, T0) is False
        assert SLACalculator.is_breached(None, T0) is False

    def test_sweep_results_add(self):
        total = SLASweepResult(1, 2) + SLASweepResult(3, 4)
        assert total.to_dict() == {"warningCount": 4, "breachedCount": 6}


class TestWarningPass:
    """Warnings fire once 75% of the window has elapsed."""

    @pytest.fixture
    async def ticket(self, org_factory, ticket_factory):
        await org_factory("org_1", members=("user_1",))
        return await ticket_factory(
            subject="Printer on fire",
            assigned_to_id="agent_1",
            created_at=T0,
            sla_first_response_due_at=T0 + timedelta(minutes=100),
        )

    async def test_no_warning_before_threshold(self, ticket, monitor, mock_notifier):
        result = await monitor.run_sweep(T0 + timedelta(minutes=74))

        assert result.warning_count == 0
        mock_notifier.notify.assert_not_awaited()

    async def test_warning_at_threshold(self, session, ticket, monitor, mock_notifier):
        now = T0 + timedelta(minutes=75)
        result = await monitor.run_sweep(now)

        assert result.to_dict() == {"warningCount": 1, "breachedCount": 0}
        mock_notifier.notify.assert_awaited_once_with(
            "agent_1",
            "org_1",
            WARNING_TITLE,
            "25 min remaining to respond: Printer on fire",
            {"conversationId": str(ticket.id)},
        )
        refreshed = await reload_ticket(session, ticket.id)
        assert refreshed.sla_warning_notified_at == now

    async def test_zero_threshold_is_honoured(self, session, ticket, mock_notifier):
        """An explicit 0.0 warns immediately instead of falling back to the configured default."""
        eager = SLAMonitorService(
            SQLAlchemyTicketSLARepository(session), mock_notifier, warning_threshold=0.0
        )

        result = await eager.run_sweep(T0 + timedelta(minutes=1))

        assert result.warning_count == 1

    async def test_warning_only_once(self, ticket, monitor, mock_notifier):
        await monitor.run_sweep(T0 + timedelta(minutes=80))
        result = await monitor.run_sweep(T0 + timedelta(minutes=90))

        assert result.warning_count == 0
        assert mock_notifier.notify.await_count == 1

    async def test_unassigned_notifies_every_member(self, org_factory, ticket_factory, monitor, mock_notifier):
        await org_factory("org_2", members=("user_1", "user_2"))
        await ticket_factory(
            "org_2",
            subject=None,
            created_at=T0,
            sla_first_response_due_at=T0 + timedelta(minutes=100),
        )
        mock_notifier.list_member_ids.return_value = ["user_1", "user_2"]

        await monitor.process_organization("org_2", T0 + timedelta(minutes=90))

        mock_notifier.list_member_ids.assert_awaited_once_with("org_2")
        recipients = [c.args[0] for c in mock_notifier.notify.await_args_list]
        assert recipients == ["user_1", "user_2"]
        assert mock_notifier.notify.await_args.args[3] == "10 min remaining to respond: (no subject)"


class TestBreachPass:
    """Breach stamping, automations and notifications."""

    @pytest.fixture
    async def breach_ticket(self, session, org_factory, ticket_factory, policy_factory):
        await org_factory("org_1", members=("user_1",))
        await policy_factory(priority="normal", first_response_minutes=60)
        automations = SQLAlchemyAutomationRepository(session)
        await automations.create("org_1", {
            "name": "Escalate breaches",
            "trigger": "sla_breached",
            "conditions": {"all": []},
            "actions": [
                {"type": "add_tag", "value": "sla-breached"},
                {"type": "set_priority", "value": "urgent"},
            ],
        })
        await session.commit()
        return await ticket_factory(
            subject="Refund please",
            created_at=T0,
            sla_first_response_due_at=T0 + timedelta(minutes=60),
        )

    async def test_breach_stamped_once_with_automations(
        self, session, breach_ticket, monitor, mock_notifier, automation_service
    ):
        """Two sweeps after the deadline stamp, automate and notify exactly once."""
        ticket = breach_ticket
        mock_notifier.list_member_ids.return_value = ["user_1"]
        first_sweep = T0 + timedelta(minutes=61)

        first = await monitor.run_sweep(first_sweep)
        second = await monitor.run_sweep(T0 + timedelta(minutes=62))

        assert first.to_dict() == {"warningCount": 0, "breachedCount": 1}
        assert second.to_dict() == {"warningCount": 0, "breachedCount": 0}
        assert automation_service.runs == [(str(ticket.id), "sla_breached")]

        mock_notifier.notify.assert_awaited_once_with(
            "user_1",
            "org_1",
            BREACH_TITLE,
            "First response SLA breached for: Refund please",
            {"conversationId": str(ticket.id)},
        )

        refreshed = await reload_ticket(session, ticket.id)
        assert refreshed.sla_breached_at == first_sweep
        assert refreshed.priority == "urgent"
        facts = await SQLAlchemyTicketActionRepository(session).load_facts(str(ticket.id))
        assert facts.tags == ("sla-breached",)

    async def test_breach_persists_notification_rows(self, session, breach_ticket, automation_service):
        push_client = MagicMock()
        push_client.trigger = AsyncMock(return_value=True)
        monitor = SLAMonitorService(
            SQLAlchemyTicketSLARepository(session),
            NotificationService(session, push_client=push_client),
            automation_service,
        )

        await monitor.run_sweep(T0 + timedelta(minutes=61))

        result = await session.execute(select(NotificationModel))
        rows = result.scalars().all()
        assert [(n.user_id, n.title, n.type) for n in rows] == [("user_1", BREACH_TITLE, "sla_breach_warning")]
        assert rows[0].data == {"conversationId": str(breach_ticket.id)}
        push_client.trigger.assert_awaited_once()
        assert push_client.trigger.await_args.args[:2] == ("private-user-user_1", "notification:new")

    async def test_notification_failure_keeps_stamp(self, session, breach_ticket, monitor, mock_notifier):
        """A failing notifier never undoes the breach stamp."""
        mock_notifier.list_member_ids.return_value = ["user_1"]
        mock_notifier.notify.side_effect = RuntimeError("push down")

        first = await monitor.run_sweep(T0 + timedelta(minutes=61))
        second = await monitor.run_sweep(T0 + timedelta(minutes=62))

        assert first.breached_count == 1
        assert second.breached_count == 0
        refreshed = await reload_ticket(session, breach_ticket.id)
        assert refreshed.sla_breached_at is not None

    async def test_breach_without_prior_warning(self, session, breach_ticket, monitor):
        """A ticket first seen after its deadline is breached, never warned."""
        result = await monitor.run_sweep(T0 + timedelta(hours=5))

        refreshed = await reload_ticket(session, breach_ticket.id)
        assert result.to_dict() == {"warningCount": 0, "breachedCount": 1}
        assert refreshed.sla_warning_notified_at is None

    async def test_reply_before_sweep_wins(self, session, breach_ticket, monitor, mock_notifier):
        tickets = SQLAlchemyTicketSLARepository(session)
        assert await tickets.mark_first_response(str(breach_ticket.id), T0 + timedelta(minutes=61)) is True
        await session.commit()

        result = await monitor.run_sweep(T0 + timedelta(minutes=62))

        assert result.breached_count == 0
        mock_notifier.notify.assert_not_awaited()


class TestConditionalStamps:
    """Stamps take effect for exactly one caller."""

    @pytest.fixture
    async def ticket(self, org_factory, ticket_factory):
        await org_factory("org_1")
        return await ticket_factory(created_at=T0, sla_first_response_due_at=T0 + timedelta(minutes=60))

    async def test_breach_stamp_once(self, session, ticket):
        tickets = SQLAlchemyTicketSLARepository(session)
        now = T0 + timedelta(minutes=61)

        assert await tickets.stamp_breach(str(ticket.id), now) is True
        assert await tickets.stamp_breach(str(ticket.id), now) is False

    async def test_warning_not_stamped_after_deadline(self, session, ticket):
        tickets = SQLAlchemyTicketSLARepository(session)
        assert await tickets.stamp_warning(str(ticket.id), T0 + timedelta(minutes=61)) is False

    async def test_breach_not_stamped_before_deadline(self, session, ticket):
        tickets = SQLAlchemyTicketSLARepository(session)
        assert await tickets.stamp_breach(str(ticket.id), T0 + timedelta(minutes=59)) is False

    async def test_no_stamps_after_first_response(self, session, ticket):
        tickets = SQLAlchemyTicketSLARepository(session)
        await tickets.mark_first_response(str(ticket.id), T0 + timedelta(minutes=10))

        assert await tickets.stamp_warning(str(ticket.id), T0 + timedelta(minutes=50)) is False
        assert await tickets.stamp_breach(str(ticket.id), T0 + timedelta(minutes=61)) is False


class TestCandidateSelection:
    """Tickets the sweep must never touch."""

    @pytest.mark.parametrize("fields", [
        {"first_response_at": T0 + timedelta(minutes=5)},
        {"status": "closed"},
        {"status": "resolved"},
        {"status": "merged"},
        {"deleted_at": T0 + timedelta(minutes=5)},
        {"sla_first_response_due_at": None},
    ])
    async def test_excluded(self, org_factory, ticket_factory, monitor, mock_notifier, fields):
        await org_factory("org_1", members=("user_1",))
        values = {"created_at": T0, "sla_first_response_due_at": T0 + timedelta(minutes=60)}
        values.update(fields)
        await ticket_factory(**values)

        warned = await monitor.run_sweep(T0 + timedelta(minutes=50))
        breached = await monitor.run_sweep(T0 + timedelta(minutes=61))

        assert warned.warning_count == 0
        assert breached.breached_count == 0
        mock_notifier.notify.assert_not_awaited()

    async def test_pending_tickets_are_monitored(self, org_factory, ticket_factory, monitor):
        await org_factory("org_1")
        await ticket_factory(status="pending", created_at=T0, sla_first_response_due_at=T0 + timedelta(minutes=60))

        result = await monitor.run_sweep(T0 + timedelta(minutes=61))

        assert result.breached_count == 1

    async def test_counts_sum_across_organizations(self, org_factory, ticket_factory, monitor):
        for org_id in ("org_a", "org_b"):
            await org_factory(org_id)
            await ticket_factory(org_id, created_at=T0, sla_first_response_due_at=T0 + timedelta(minutes=60))

        result = await monitor.run_sweep(T0 + timedelta(minutes=61))

        assert result.breached_count == 2


class TestFailureIsolation:
    """Errors in one place never abort the whole sweep."""

    @staticmethod
    def mock_repository():
        repository = MagicMock()
        for name in (
            "list_organization_ids", "find_warning_candidates", "find_breach_candidates",
            "stamp_warning", "stamp_breach", "commit", "rollback",
        ):
            setattr(repository, name, AsyncMock())
        return repository

    async def test_failing_organization_is_skipped(self, mock_notifier):
        repository = self.mock_repository()
        repository.list_organization_ids.return_value = ["org_bad", "org_good"]

        async def warnings(organization_id, now):
            if organization_id == "org_bad":
                raise RuntimeError("query failed")
            return []

        repository.find_warning_candidates.side_effect = warnings
        repository.find_breach_candidates.return_value = []

        result = await SLAMonitorService(repository, mock_notifier).run_sweep(T0)

        assert result.to_dict() == {"warningCount": 0, "breachedCount": 0}
        repository.rollback.assert_awaited()
        assert repository.find_breach_candidates.await_args.args[0] == "org_good"

    async def test_listing_organizations_failure_propagates(self, mock_notifier):
        repository = self.mock_repository()
        repository.list_organization_ids.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await SLAMonitorService(repository, mock_notifier).run_sweep(T0)

    async def test_failed_stamp_is_not_counted(self, mock_notifier):
        repository = self.mock_repository()
        repository.list_organization_ids.return_value = ["org_1"]
        repository.find_warning_candidates.return_value = []
        repository.find_breach_candidates.return_value = [
            TicketSLASnapshot(
                id="t1", organization_id="org_1", created_at=T0, priority="normal",
                status="open", sla_first_response_due_at=T0 + timedelta(minutes=60),
            ),
        ]
        repository.stamp_breach.side_effect = RuntimeError("deadlock")

        result = await SLAMonitorService(repository, mock_notifier).run_sweep(T0 + timedelta(minutes=61))

        assert result.breached_count == 0
        mock_notifier.notify.assert_not_awaited()
