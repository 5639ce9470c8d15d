"""
Tests for the SLA monitor: warning/breach scans, cool-down dedup,
failure containment and dashboard queries.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from helpdesk.config import NotificationType, Priority, SLAStatus, TicketStatus
from helpdesk.core import ResourceNotFoundException
from helpdesk.sla.application import EscalationService, SLAMonitorService

from tests.conftest import ADMIN_IDS, AGENT_ID, CREATOR_ID, T0, notifications_of


def _due_in(store, ticket, delta, clock):
    """Move the stored ticket's due date relative to the current clock."""
    ticket.due_date = clock() + delta
    store.add(ticket)


class TestWarningScan:
    """Warnings for tickets due inside the warning window."""

    @pytest.mark.asyncio
    async def test_warning_sent_to_creator_and_assignee(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        ticket = ticket_factory(assigned_to=AGENT_ID)
        _due_in(store, ticket, timedelta(minutes=90), clock)

        report = await monitor.check_sla_status()

        warnings = notifications_of(notification_repo, NotificationType.SLA_WARNING, ticket.id)
        assert report.warnings_sent == 1
        assert {n.recipient_id for n in warnings} == {CREATOR_ID, AGENT_ID}
        assert warnings[0].message == 'Ticket "Printer is on fire" is due in 2 hours'

    @pytest.mark.asyncio
    async def test_warning_not_repeated_within_cooldown(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        """Two scans ten minutes apart produce one warning."""
        ticket = ticket_factory()
        _due_in(store, ticket, timedelta(minutes=90), clock)
        await monitor.check_sla_status()

        clock.advance(minutes=10)
        _due_in(store, ticket, timedelta(minutes=90), clock)
        report = await monitor.check_sla_status()

        assert report.warnings_sent == 0
        assert report.skipped == 1
        assert len(notifications_of(notification_repo, NotificationType.SLA_WARNING, ticket.id)) == 1

    @pytest.mark.asyncio
    async def test_warning_repeated_after_cooldown(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        """Two scans ninety minutes apart produce two warnings."""
        ticket = ticket_factory()
        _due_in(store, ticket, timedelta(minutes=90), clock)
        await monitor.check_sla_status()

        clock.advance(minutes=90)
        _due_in(store, ticket, timedelta(minutes=90), clock)
        report = await monitor.check_sla_status()

        assert report.warnings_sent == 1
        assert len(notifications_of(notification_repo, NotificationType.SLA_WARNING, ticket.id)) == 2

    @pytest.mark.asyncio
    async def test_tickets_outside_window_are_ignored(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        soon = ticket_factory()
        _due_in(store, soon, timedelta(minutes=30), clock)
        later = ticket_factory()
        _due_in(store, later, timedelta(hours=3), clock)
        resolved = ticket_factory(status=TicketStatus.RESOLVED)
        _due_in(store, resolved, timedelta(minutes=90), clock)

        report = await monitor.check_sla_status()

        assert report.warnings_sent == 0
        assert notifications_of(notification_repo, NotificationType.SLA_WARNING) == []


class TestBreachScan:
    """Breach notifications and escalation of overdue tickets."""

    @pytest.mark.asyncio
    async def test_breach_notifies_admins_and_escalates(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        ticket = ticket_factory(priority=Priority.LOW, assigned_to=AGENT_ID)
        _due_in(store, ticket, timedelta(hours=-1), clock)

        report = await monitor.check_sla_status()

        breaches = notifications_of(notification_repo, NotificationType.SLA_BREACH, ticket.id)
        assert {n.recipient_id for n in breaches} == {CREATOR_ID, AGENT_ID, *ADMIN_IDS}
        assert all(n.priority == Priority.URGENT for n in breaches)
        assert report.breaches_sent == 1
        assert report.escalated == 1

        stored = await store.get_ticket(ticket.id)
        assert stored.priority == Priority.URGENT
        assert stored.version == 1
        assert [note.text for note in stored.internal_notes] == [
            "Auto-escalated by system: SLA breach: resolution due date passed"
        ]
        assert stored.internal_notes[0].is_system

    @pytest.mark.asyncio
    async def test_breach_not_repeated_within_cooldown(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        ticket = ticket_factory(
            priority=Priority.URGENT, assigned_to=AGENT_ID, created_at=T0 - timedelta(hours=3)
        )
        await monitor.check_sla_status()

        clock.advance(minutes=30)
        report = await monitor.check_sla_status()

        stored = await store.get_ticket(ticket.id)
        assert report.breaches_sent == 0
        assert len(stored.internal_notes) == 1
        assert len(notifications_of(notification_repo, NotificationType.SLA_BREACH, ticket.id)) == 4

    @pytest.mark.asyncio
    async def test_urgent_ticket_warns_then_breaches(
        self, monitor, ticket_factory, notification_repo, store, clock
    ):
        """An urgent ticket is warned while due soon and escalated once overdue."""
        ticket = ticket_factory(priority=Priority.URGENT, assigned_to=AGENT_ID)

        clock.advance(minutes=5)
        await monitor.check_sla_status()
        warnings = notifications_of(notification_repo, NotificationType.SLA_WARNING, ticket.id)
        assert {n.recipient_id for n in warnings} == {CREATOR_ID, AGENT_ID}

        clock.advance(hours=2)
        await monitor.check_sla_status()
        breaches = notifications_of(notification_repo, NotificationType.SLA_BREACH, ticket.id)
        escalations = notifications_of(notification_repo, NotificationType.TICKET_ESCALATED, ticket.id)
        assert {n.recipient_id for n in breaches} == {CREATOR_ID, AGENT_ID, *ADMIN_IDS}
        assert {n.recipient_id for n in escalations} == set(ADMIN_IDS)

        stored = await store.get_ticket(ticket.id)
        assert stored.priority == Priority.URGENT
        assert len(stored.internal_notes) == 1

    @pytest.mark.asyncio
    async def test_one_failing_ticket_does_not_stop_the_scan(
        self, store, directory, notifier, config_provider, ticket_factory, clock
    ):
        escalation = AsyncMock(spec=EscalationService)
        escalation.escalate_ticket.side_effect = [RuntimeError("boom"), object()]
        monitor = SLAMonitorService(
            store, directory, notifier, config_provider, escalation, clock=clock
        )
        first = ticket_factory()
        _due_in(store, first, timedelta(hours=-2), clock)
        second = ticket_factory()
        _due_in(store, second, timedelta(hours=-1), clock)

        report = await monitor.check_sla_status()

        assert report.breaches_sent == 2
        assert report.failed == 1
        assert report.failed_ticket_ids == [first.id]
        assert report.escalated == 1


class TestEscalateTicket:
    """The escalation action shared by both scans."""

    @pytest.mark.asyncio
    async def test_lost_race_is_skipped(self, escalation, store, ticket_factory, notification_repo):
        ticket = ticket_factory()
        stale = await store.get_ticket(ticket.id)
        fresh = await store.get_ticket(ticket.id)
        fresh.add_tag("touched", T0)
        await store.save_ticket(fresh, 0)

        result = await escalation.escalate_ticket(stale, ["test"])

        assert result is None
        stored = await store.get_ticket(ticket.id)
        assert stored.internal_notes == []
        assert stored.priority == Priority.MEDIUM
        assert notifications_of(notification_repo, NotificationType.TICKET_ESCALATED) == []


class TestQueries:
    """Dashboard aggregates and the per-ticket view."""

    @pytest.mark.asyncio
    async def test_sla_stats(self, monitor, ticket_factory, store, clock):
        overdue = ticket_factory()
        _due_in(store, overdue, timedelta(hours=-1), clock)
        due_soon = ticket_factory()
        _due_in(store, due_soon, timedelta(minutes=90), clock)
        later = ticket_factory(status=TicketStatus.IN_PROGRESS)
        _due_in(store, later, timedelta(hours=48), clock)
        closed = ticket_factory(status=TicketStatus.CLOSED)
        _due_in(store, closed, timedelta(hours=-10), clock)
        ticket_factory(status=TicketStatus.CANCELLED)

        stats = await monitor.get_sla_stats()

        assert stats.total_tickets == 4
        assert stats.on_time == 3
        assert stats.breached == 1
        assert stats.warning == 1
        assert stats.sla_compliance == 75
        assert stats.by_status[SLAStatus.RESOLUTION_BREACH.value] == 1
        assert stats.by_status[SLAStatus.WARNING.value] == 1
        assert stats.by_status[SLAStatus.ON_TIME.value] == 1
        assert stats.by_status[SLAStatus.COMPLETED.value] == 1

    @pytest.mark.asyncio
    async def test_empty_stats_are_fully_compliant(self, monitor):
        stats = await monitor.get_sla_stats()
        assert stats.total_tickets == 0
        assert stats.sla_compliance == 100

    @pytest.mark.asyncio
    async def test_ticket_sla_view(self, monitor, ticket_factory, clock):
        ticket = ticket_factory(priority=Priority.HIGH)
        clock.advance(hours=3)

        view = await monitor.get_ticket_sla(ticket.id)

        assert view.sla_status == SLAStatus.WARNING
        assert view.time_remaining_hours == 5
        assert view.resolution_budget_hours == 8
        assert view.due_date == T0 + timedelta(hours=8)

    @pytest.mark.asyncio
    async def test_ticket_sla_unknown_ticket(self, monitor):
        with pytest.raises(ResourceNotFoundException):
            await monitor.get_ticket_sla("missing")
