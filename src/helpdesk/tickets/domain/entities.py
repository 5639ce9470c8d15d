"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket state machine.

Mutations happen through the methods on ``Ticket`` so the state machine
invariants (first response stamping, resolution stamping, due-date
recomputation, terminal cancellation) hold no matter who drives them:
a human edit, a workflow action or the escalation job. Persisting the
result and bumping ``version`` is the store's job.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union
from uuid import uuid4

from helpdesk.config import (
    Priority, TicketStatus, UserRole, SLAStatus,
    ACTIVE_STATUSES, COMPLETED_STATUSES,
)
from helpdesk.core import InvalidTransitionException
from helpdesk.sla.domain.value_objects import SLAPolicy


class SystemActor(Enum):
    """Author of changes made by the scheduler or workflow engine."""
    SYSTEM = "system"


SYSTEM = SystemActor.SYSTEM

Author = Union[str, SystemActor]


@dataclass
class InternalNote:
    """Audit-trail entry visible to agents and admins only."""

    text: str
    author: Author
    added_at: datetime

    @property
    def is_system(self) -> bool:
        return self.author is SYSTEM


@dataclass
class User:
    """Directory entry for a ticket creator, agent or admin."""

    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool = True
    specializations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Actor:
    """Identity and role of a human initiating a change."""

    user_id: str
    role: UserRole


@dataclass
class Ticket:
    """
    Ticket entity representing a support ticket.

    ``version`` starts at 0 and is incremented by the store on every
    successful save after creation.
    """

    # Core attributes
    id: str
    title: str
    description: str
    category: str
    created_by: str

    # Timestamps
    created_at: datetime
    updated_at: datetime

    # SLA sub-record
    response_time_budget: float
    resolution_time_budget: float
    due_date: datetime

    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    version: int = 0
    tags: List[str] = field(default_factory=list)
    internal_notes: List[InternalNote] = field(default_factory=list)

    @classmethod
    def open(
        cls,
        title: str,
        description: str,
        category: str,
        created_by: str,
        policy: SLAPolicy,
        now: datetime,
        priority: Priority = Priority.MEDIUM,
        tags: Optional[List[str]] = None,
        ticket_id: Optional[str] = None
    ) -> "Ticket":
        """Create a new open ticket with budgets and due date from the policy."""
        ticket = cls(
            id=ticket_id or str(uuid4()),
            title=title,
            description=description,
            category=category,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            response_time_budget=policy.response_budget_hours(priority),
            resolution_time_budget=policy.resolution_budget_hours(priority),
            due_date=policy.due_date(priority, now),
            priority=priority,
        )
        for tag in tags or []:
            if tag not in ticket.tags:
                ticket.tags.append(tag)
        return ticket

    # ========== State queries ==========

    @property
    def is_active(self) -> bool:
        """Open or in progress."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    def sla_status(self, policy: SLAPolicy, now: datetime) -> SLAStatus:
        return policy.classify(
            now, self.status, self.due_date,
            self.first_response_at, self.response_time_budget
        )

    def time_remaining(self, now: datetime) -> Optional[int]:
        return SLAPolicy.time_remaining_hours(now, self.status, self.due_date)

    def can_be_modified(self, role: UserRole, actor_id: str) -> bool:
        """
        Authorization predicate for human-initiated changes.

        Admins always; agents when the ticket is unassigned or theirs;
        the creator only while the ticket is still open.
        """
        if role == UserRole.ADMIN:
            return True
        if role == UserRole.AGENT and (self.assigned_to is None or self.assigned_to == actor_id):
            return True
        if role == UserRole.USER and self.created_by == actor_id and self.status == TicketStatus.OPEN:
            return True
        return False

    # ========== Mutations ==========

    def change_status(self, status: TicketStatus, at: datetime) -> bool:
        """
        Move the ticket to ``status``.

        Returns False when the status is unchanged. Cancelled is terminal.
        """
        status = TicketStatus(status)
        if status == self.status:
            return False
        if self.status == TicketStatus.CANCELLED:
            raise InvalidTransitionException(self.id, self.status.value, status.value)

        self.status = status
        if self.first_response_at is None:
            self.first_response_at = at
        if status in COMPLETED_STATUSES and self.resolved_at is None:
            self.resolved_at = at
        self.updated_at = at
        return True

    def change_priority(self, priority: Priority, policy: SLAPolicy, at: datetime) -> bool:
        """Change priority and recompute budgets and due date from ``created_at``."""
        priority = Priority(priority)
        if priority == self.priority:
            return False

        self.priority = priority
        self.response_time_budget = policy.response_budget_hours(priority)
        self.resolution_time_budget = policy.resolution_budget_hours(priority)
        self.due_date = policy.due_date(priority, self.created_at)
        self.updated_at = at
        return True

    def assign(self, agent_id: Optional[str], at: datetime) -> bool:
        if agent_id == self.assigned_to:
            return False
        self.assigned_to = agent_id
        self.assigned_at = at if agent_id else None
        self.updated_at = at
        return True

    def add_tag(self, tag: str, at: datetime) -> bool:
        """Append ``tag`` unless already present."""
        if tag in self.tags:
            return False
        self.tags.append(tag)
        self.updated_at = at
        return True

    def set_tags(self, tags: List[str], at: datetime) -> bool:
        deduped = list(dict.fromkeys(tags))
        if deduped == self.tags:
            return False
        self.tags = deduped
        self.updated_at = at
        return True

    def add_internal_note(self, text: str, author: Author, at: datetime) -> InternalNote:
        note = InternalNote(text=text, author=author, added_at=at)
        self.internal_notes.append(note)
        self.updated_at = at
        return note
