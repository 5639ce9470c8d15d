"""
Shared pytest fixtures.

Core services run against the in-memory adapters with a frozen clock
and a deterministic agent selector.
"""

from datetime import datetime, timedelta, timezone

import pytest

from helpdesk.config import Priority, UserRole
from helpdesk.notifications.application import NotificationService
from helpdesk.notifications.infrastructure import InMemoryNotificationRepository
from helpdesk.sla.application import EscalationService, SLAMonitorService
from helpdesk.sla.domain import SLAConfig, StaticSLAConfigProvider
from helpdesk.tickets.application import TicketService
from helpdesk.tickets.domain import Ticket, User
from helpdesk.tickets.infrastructure import InMemoryTicketStore, InMemoryUserDirectory
from helpdesk.workflow.application import WorkflowEngine, build_default_rules

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

CREATOR_ID = "user-1"
AGENT_ID = "agent-1"
ADMIN_IDS = ["admin-1", "admin-2"]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def config_provider():
    return StaticSLAConfigProvider(SLAConfig())


@pytest.fixture
def policy(config_provider):
    return config_provider.get_policy()


@pytest.fixture
def directory():
    return InMemoryUserDirectory([
        User(id=CREATOR_ID, name="Casey Creator", email="casey@example.com", role=UserRole.USER),
        User(id=AGENT_ID, name="Alex Agent", email="alex@example.com", role=UserRole.AGENT,
             specializations=["technical"]),
        User(id="agent-2", name="Billie Billing", email="billie@example.com", role=UserRole.AGENT,
             specializations=["billing"]),
        User(id=ADMIN_IDS[0], name="Ada Admin", email="ada@example.com", role=UserRole.ADMIN),
        User(id=ADMIN_IDS[1], name="Max Admin", email="max@example.com", role=UserRole.ADMIN),
        User(id="admin-retired", name="Old Admin", email="old@example.com", role=UserRole.ADMIN,
             is_active=False),
    ])


@pytest.fixture
def store():
    return InMemoryTicketStore()


@pytest.fixture
def notification_repo():
    return InMemoryNotificationRepository()


@pytest.fixture
def notifier(notification_repo, directory, clock):
    return NotificationService(notification_repo, directory, clock=clock)


@pytest.fixture
def workflow(store, directory, notifier, config_provider, clock):
    return WorkflowEngine(
        store, directory, notifier, config_provider,
        selector=lambda agents: agents[0],
        clock=clock,
    )


@pytest.fixture
def workflow_with_defaults(workflow):
    for rule in build_default_rules():
        workflow.register_rule(rule.name, rule)
    return workflow


@pytest.fixture
def escalation(store, notifier, config_provider, workflow_with_defaults, clock):
    return EscalationService(store, notifier, config_provider, workflow_with_defaults, clock=clock)


@pytest.fixture
def monitor(store, directory, notifier, config_provider, escalation, clock):
    return SLAMonitorService(store, directory, notifier, config_provider, escalation, clock=clock)


@pytest.fixture
def ticket_service(store, config_provider, workflow_with_defaults, clock):
    return TicketService(store, config_provider, workflow_with_defaults, clock=clock)


@pytest.fixture
def ticket_factory(store, policy, clock):
    """Seed a ticket straight into the store, bypassing workflow triggers."""

    def _make(
        priority: Priority = Priority.MEDIUM,
        created_at: datetime = None,
        category: str = "general",
        created_by: str = CREATOR_ID,
        title: str = "Printer is on fire",
        **fields
    ) -> Ticket:
        ticket = Ticket.open(
            title=title,
            description="Smoke is coming out of the second floor printer.",
            category=category,
            created_by=created_by,
            policy=policy,
            now=created_at or clock(),
            priority=priority,
        )
        for name, value in fields.items():
            setattr(ticket, name, value)
        store.add(ticket)
        return ticket

    return _make


def notifications_of(repo, kind, ticket_id=None):
    return [
        n for n in repo.items
        if n.kind == kind and (ticket_id is None or n.ticket_id == ticket_id)
    ]
