"""
Tests for the ticket state machine, the optimistic-locked store and the
interactive update path.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from helpdesk.config import (
    NotificationType, Priority, TicketCategory, TicketStatus, UserRole, WorkflowTrigger,
)
from helpdesk.core import (
    InvalidTransitionException,
    PermissionDeniedException,
    ResourceNotFoundException,
    VersionConflictException,
)
from helpdesk.tickets.application import TicketCreateDTO, TicketService, TicketUpdateDTO
from helpdesk.tickets.domain import Actor

from tests.conftest import ADMIN_IDS, AGENT_ID, CREATOR_ID, T0, notifications_of


class TestTicketStateMachine:
    """Mutations on the Ticket entity."""

    def test_open_sets_budgets_and_due_date(self, ticket_factory):
        ticket = ticket_factory(priority=Priority.URGENT)

        assert ticket.status == TicketStatus.OPEN
        assert ticket.version == 0
        assert ticket.resolution_time_budget == 2
        assert ticket.response_time_budget == 24
        assert ticket.due_date == T0 + timedelta(hours=2)

    def test_first_response_is_stamped_once(self, ticket_factory):
        """The first status change stamps first_response_at; later ones keep it."""
        ticket = ticket_factory()

        ticket.change_status(TicketStatus.IN_PROGRESS, T0 + timedelta(hours=1))
        ticket.change_status(TicketStatus.OPEN, T0 + timedelta(hours=2))

        assert ticket.first_response_at == T0 + timedelta(hours=1)

    def test_resolution_is_stamped_once(self, ticket_factory):
        ticket = ticket_factory()

        ticket.change_status(TicketStatus.RESOLVED, T0 + timedelta(hours=3))
        ticket.change_status(TicketStatus.CLOSED, T0 + timedelta(hours=5))

        assert ticket.resolved_at == T0 + timedelta(hours=3)

    def test_resolved_ticket_can_be_reopened(self, ticket_factory):
        ticket = ticket_factory(status=TicketStatus.RESOLVED)

        assert ticket.change_status(TicketStatus.IN_PROGRESS, T0) is True
        assert ticket.status == TicketStatus.IN_PROGRESS

    def test_cancelled_is_terminal(self, ticket_factory):
        ticket = ticket_factory(status=TicketStatus.CANCELLED)

        with pytest.raises(InvalidTransitionException):
            ticket.change_status(TicketStatus.OPEN, T0)
        assert ticket.status == TicketStatus.CANCELLED

    def test_same_status_is_not_a_change(self, ticket_factory):
        ticket = ticket_factory()

        assert ticket.change_status(TicketStatus.OPEN, T0 + timedelta(hours=1)) is False
        assert ticket.first_response_at is None

    def test_priority_change_recomputes_due_date_from_creation(self, ticket_factory, policy):
        """Due date is anchored on created_at, not on the time of the change."""
        ticket = ticket_factory(priority=Priority.MEDIUM)

        ticket.change_priority(Priority.LOW, policy, T0 + timedelta(hours=5))

        assert ticket.due_date == T0 + timedelta(hours=72)
        assert ticket.resolution_time_budget == 72
        assert ticket.updated_at == T0 + timedelta(hours=5)

    def test_add_tag_is_idempotent(self, ticket_factory):
        ticket = ticket_factory()

        assert ticket.add_tag("vip", T0) is True
        assert ticket.add_tag("vip", T0) is False
        assert ticket.tags == ["vip"]

    @pytest.mark.parametrize("role,actor_id,assigned_to,status,allowed", [
        (UserRole.ADMIN, "admin-1", "someone", TicketStatus.IN_PROGRESS, True),
        (UserRole.AGENT, AGENT_ID, None, TicketStatus.OPEN, True),
        (UserRole.AGENT, AGENT_ID, AGENT_ID, TicketStatus.IN_PROGRESS, True),
        (UserRole.AGENT, AGENT_ID, "agent-2", TicketStatus.OPEN, False),
        (UserRole.USER, CREATOR_ID, None, TicketStatus.OPEN, True),
        (UserRole.USER, CREATOR_ID, None, TicketStatus.IN_PROGRESS, False),
        (UserRole.USER, "stranger", None, TicketStatus.OPEN, False),
    ])
    def test_can_be_modified(self, ticket_factory, role, actor_id, assigned_to, status, allowed):
        ticket = ticket_factory(assigned_to=assigned_to, status=status)
        assert ticket.can_be_modified(role, actor_id) is allowed


class TestInMemoryTicketStore:
    """Optimistic locking in the in-memory store."""

    @pytest.mark.asyncio
    async def test_version_counts_successful_saves(self, store, ticket_factory):
        """A ticket saved N times after creation has version N."""
        ticket = await store.get_ticket(ticket_factory().id)

        for i in range(3):
            ticket.add_tag(f"tag-{i}", T0)
            ticket = await store.save_ticket(ticket, ticket.version)

        assert ticket.version == 3
        assert (await store.get_ticket(ticket.id)).version == 3

    @pytest.mark.asyncio
    async def test_stale_save_is_rejected_without_changes(self, store, ticket_factory):
        ticket = ticket_factory()
        first = await store.get_ticket(ticket.id)
        second = await store.get_ticket(ticket.id)

        first.add_tag("first", T0)
        await store.save_ticket(first, 0)

        second.add_tag("second", T0)
        with pytest.raises(VersionConflictException) as exc_info:
            await store.save_ticket(second, 0)

        assert exc_info.value.current_version == 1
        stored = await store.get_ticket(ticket.id)
        assert stored.tags == ["first"]
        assert stored.version == 1

    @pytest.mark.asyncio
    async def test_save_unknown_ticket_raises_not_found(self, store, ticket_factory):
        ticket = ticket_factory()
        other = await store.get_ticket(ticket.id)
        other.id = "missing"

        with pytest.raises(ResourceNotFoundException):
            await store.save_ticket(other, 0)

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, store, ticket_factory):
        ticket = ticket_factory()
        loaded = await store.get_ticket(ticket.id)

        loaded.tags.append("local-only")

        assert (await store.get_ticket(ticket.id)).tags == []


class TestTicketService:
    """Create/update boundary used by the API."""

    @pytest.fixture
    def workflow_mock(self):
        """Workflow trigger that returns the ticket unchanged."""
        workflow = AsyncMock()
        workflow.execute_rules.side_effect = lambda ticket, trigger, actor=None: ticket
        return workflow

    @pytest.fixture
    def service(self, store, config_provider, workflow_mock, clock):
        return TicketService(store, config_provider, workflow_mock, clock=clock)

    @pytest.mark.asyncio
    async def test_create_ticket_fires_created_trigger(self, service, workflow_mock):
        ticket = await service.create_ticket(
            TicketCreateDTO(
                title="VPN drops every hour",
                description="The VPN client disconnects every hour on the hour.",
                category=TicketCategory.TECHNICAL,
                priority=Priority.HIGH,
            ),
            CREATOR_ID,
        )

        assert ticket.version == 0
        assert ticket.due_date == T0 + timedelta(hours=8)
        workflow_mock.execute_rules.assert_awaited_once()
        assert workflow_mock.execute_rules.await_args.args[1] == [WorkflowTrigger.TICKET_CREATED]

    @pytest.mark.asyncio
    async def test_update_is_one_versioned_write(self, service, ticket_factory, workflow_mock):
        ticket = ticket_factory()
        actor = Actor(AGENT_ID, UserRole.AGENT)

        updated = await service.update_ticket(
            ticket.id,
            TicketUpdateDTO(
                version=0,
                status=TicketStatus.RESOLVED,
                priority=Priority.HIGH,
                assigned_to=AGENT_ID,
                tags=["network"],
            ),
            actor,
        )

        assert updated.version == 1
        assert updated.status == TicketStatus.RESOLVED
        assert updated.assigned_to == AGENT_ID
        assert updated.tags == ["network"]
        workflow_mock.execute_rules.assert_awaited_once()
        assert workflow_mock.execute_rules.await_args.args[1] == [
            WorkflowTrigger.TICKET_UPDATED,
            WorkflowTrigger.TICKET_ASSIGNED,
            WorkflowTrigger.TICKET_RESOLVED,
        ]

    @pytest.mark.asyncio
    async def test_stale_version_is_rejected(self, service, store, ticket_factory):
        ticket = ticket_factory()
        await service.update_ticket(ticket.id, TicketUpdateDTO(version=0, tags=["a"]))

        with pytest.raises(VersionConflictException) as exc_info:
            await service.update_ticket(ticket.id, TicketUpdateDTO(version=0, tags=["b"]))

        assert exc_info.value.current_version == 1
        assert (await store.get_ticket(ticket.id)).tags == ["a"]

    @pytest.mark.asyncio
    async def test_unauthorized_actor_is_rejected(self, service, ticket_factory):
        ticket = ticket_factory(assigned_to="agent-2")

        with pytest.raises(PermissionDeniedException):
            await service.update_ticket(
                ticket.id,
                TicketUpdateDTO(version=0, priority=Priority.LOW),
                Actor(AGENT_ID, UserRole.AGENT),
            )

    @pytest.mark.asyncio
    async def test_no_op_update_is_not_saved(self, service, store, ticket_factory, workflow_mock):
        ticket = ticket_factory()

        result = await service.update_ticket(
            ticket.id, TicketUpdateDTO(version=0, status=TicketStatus.OPEN)
        )

        assert result.version == 0
        workflow_mock.execute_rules.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_ticket_raises_not_found(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.get_ticket("missing")


class TestMutationTriggers:
    """Default rules reached through the update boundary."""

    @pytest.mark.asyncio
    async def test_one_admin_broadcast_per_mutation(self, ticket_service, notification_repo):
        ticket = await ticket_service.create_ticket(
            TicketCreateDTO(
                title="Invoice totals are wrong",
                description="Every invoice this month shows double the real amount.",
                category=TicketCategory.BILLING,
                priority=Priority.URGENT,
            ),
            CREATOR_ID,
        )
        admin = Actor(ADMIN_IDS[0], UserRole.ADMIN)

        def broadcasts():
            return notifications_of(notification_repo, NotificationType.TICKET_ESCALATED, ticket.id)

        assert len(broadcasts()) == len(ADMIN_IDS)

        # Fires ticket_updated and ticket_assigned
        ticket = await ticket_service.update_ticket(
            ticket.id, TicketUpdateDTO(version=ticket.version, assigned_to=AGENT_ID), admin
        )
        assert len(broadcasts()) == 2 * len(ADMIN_IDS)

        await ticket_service.update_ticket(
            ticket.id, TicketUpdateDTO(version=ticket.version, tags=["invoices"]), admin
        )
        assert len(broadcasts()) == 3 * len(ADMIN_IDS)
