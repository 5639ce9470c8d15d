"""
Ticket Application Services
===========================

The ticket-mutation boundary: interactive creates and updates go through
``TicketService``, which enforces authorization and the optimistic
version check, persists the change as one write and then hands the saved
ticket to the workflow engine.

Following SOLID principles:
- Dependency Inversion: depends on store/directory/workflow abstractions
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Union

from helpdesk.config import TicketStatus, WorkflowTrigger
from helpdesk.core import (
    PermissionDeniedException,
    ResourceNotFoundException,
    VersionConflictException,
)
from helpdesk.shared.infrastructure.clock import Clock, utcnow
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.domain import ISLAConfigProvider, SLAPolicy
from helpdesk.tickets.application.dto import TicketCreateDTO, TicketUpdateDTO
from helpdesk.tickets.domain import Actor, Ticket, TicketFilter, User

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketStore(ABC):
    """Interface for ticket document storage."""

    @abstractmethod
    async def find_tickets_matching(self, ticket_filter: TicketFilter) -> List[Ticket]:
        """List tickets satisfying every predicate in the filter."""

    @abstractmethod
    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by id."""

    @abstractmethod
    async def create_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket at version 0."""

    @abstractmethod
    async def save_ticket(self, ticket: Ticket, expected_version: int) -> Ticket:
        """
        Atomically replace the stored ticket.

        Raises VersionConflictException, leaving the stored document
        untouched, when the stored version differs from ``expected_version``.
        Returns the stored ticket with its incremented version.
        """


class IUserDirectory(ABC):
    """Interface for user lookups."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by id."""

    @abstractmethod
    async def find_active_agents_by_specialization(self, specialization: str) -> List[User]:
        """Active agents listing ``specialization``."""

    @abstractmethod
    async def find_active_admins(self) -> List[User]:
        """All active admins."""


class IWorkflowTrigger(ABC):
    """Receiver of ticket lifecycle events."""

    @abstractmethod
    async def execute_rules(
        self,
        ticket: Ticket,
        trigger: Union[WorkflowTrigger, Sequence[WorkflowTrigger]],
        actor: Optional[Actor] = None
    ) -> Ticket:
        """Run each matching rule at most once; return the ticket as last saved."""


# ========== Application Services ==========

class TicketService:
    """Creates and updates tickets on behalf of interactive callers."""

    def __init__(
        self,
        store: ITicketStore,
        config_provider: ISLAConfigProvider,
        workflow: Optional[IWorkflowTrigger] = None,
        clock: Clock = utcnow
    ):
        self._store = store
        self._config_provider = config_provider
        self._workflow = workflow
        self._clock = clock

    @property
    def policy(self) -> SLAPolicy:
        return self._config_provider.get_policy()

    async def create_ticket(self, data: TicketCreateDTO, creator_id: str) -> Ticket:
        ticket = Ticket.open(
            title=data.title,
            description=data.description,
            category=data.category.value,
            created_by=creator_id,
            policy=self.policy,
            now=self._clock(),
            priority=data.priority,
            tags=data.tags,
        )
        ticket = await self._store.create_ticket(ticket)

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "priority": ticket.priority.value,
                "due_date": ticket.due_date.isoformat()
            }
        )

        return await self._emit(ticket, [WorkflowTrigger.TICKET_CREATED], None)

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def update_ticket(
        self,
        ticket_id: str,
        changes: TicketUpdateDTO,
        actor: Optional[Actor] = None
    ) -> Ticket:
        """
        Apply ``changes`` as one versioned write.

        ``actor`` is None for system-originated changes, which bypass the
        authorization predicate.
        """
        ticket = await self.get_ticket(ticket_id)

        if actor is not None and not ticket.can_be_modified(actor.role, actor.user_id):
            raise PermissionDeniedException(ticket_id, actor.user_id, actor.role.value)

        if ticket.version != changes.version:
            raise VersionConflictException(ticket_id, changes.version, ticket.version)

        now = self._clock()
        previous_assignee = ticket.assigned_to

        status_changed = False
        changed = False
        if changes.status is not None:
            status_changed = ticket.change_status(changes.status, now)
            changed |= status_changed
        if changes.priority is not None:
            changed |= ticket.change_priority(changes.priority, self.policy, now)
        if changes.unassign:
            changed |= ticket.assign(None, now)
        elif changes.assigned_to is not None:
            changed |= ticket.assign(changes.assigned_to, now)
        if changes.tags is not None:
            changed |= ticket.set_tags(changes.tags, now)

        if not changed:
            return ticket

        ticket = await self._store.save_ticket(ticket, changes.version)

        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": ticket.id,
                "version": ticket.version,
                "actor_id": actor.user_id if actor else None
            }
        )

        triggers = [WorkflowTrigger.TICKET_UPDATED]
        if ticket.assigned_to and ticket.assigned_to != previous_assignee:
            triggers.append(WorkflowTrigger.TICKET_ASSIGNED)
        if status_changed and ticket.status == TicketStatus.RESOLVED:
            triggers.append(WorkflowTrigger.TICKET_RESOLVED)

        return await self._emit(ticket, triggers, actor)

    async def _emit(
        self,
        ticket: Ticket,
        triggers: List[WorkflowTrigger],
        actor: Optional[Actor]
    ) -> Ticket:
        if self._workflow is None or not triggers:
            return ticket
        return await self._workflow.execute_rules(ticket, triggers, actor)
