"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of the ticket store and user directory.

The SQLAlchemy implementations open one session per operation and
implement the optimistic lock as a conditional UPDATE on
``(id, version)``. The in-memory implementations keep deep copies behind
an ``asyncio.Lock`` and back the ``memory`` storage backend and the tests.
"""

import asyncio
import copy
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, select, update

from helpdesk.config import Priority, TicketStatus, UserRole
from helpdesk.core import (
    RepositoryException,
    ResourceNotFoundException,
    VersionConflictException,
)
from helpdesk.infrastructure.database import get_session_context
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application.services import ITicketStore, IUserDirectory
from helpdesk.tickets.domain import SYSTEM, InternalNote, Ticket, TicketFilter, User
from helpdesk.tickets.infrastructure.models import TicketModel, UserModel

logger = get_logger(__name__)


# ========== Mapping ==========

def _notes_to_json(notes: List[InternalNote]) -> List[dict]:
    return [
        {
            "text": n.text,
            "author": None if n.is_system else n.author,
            "added_at": n.added_at.isoformat(),
        }
        for n in notes
    ]


def _notes_from_json(raw: Optional[List[dict]]) -> List[InternalNote]:
    return [
        InternalNote(
            text=item["text"],
            author=SYSTEM if item.get("author") is None else item["author"],
            added_at=datetime.fromisoformat(item["added_at"]),
        )
        for item in raw or []
    ]


def _ticket_columns(ticket: Ticket) -> dict:
    """Column values for every mutable field, excluding id and version."""
    return {
        "title": ticket.title,
        "description": ticket.description,
        "category": ticket.category,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "created_by": ticket.created_by,
        "assigned_to": ticket.assigned_to,
        "assigned_at": ticket.assigned_at,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
        "response_time_budget": ticket.response_time_budget,
        "resolution_time_budget": ticket.resolution_time_budget,
        "due_date": ticket.due_date,
        "first_response_at": ticket.first_response_at,
        "resolved_at": ticket.resolved_at,
        "tags": list(ticket.tags),
        "internal_notes": _notes_to_json(ticket.internal_notes),
    }


def ticket_to_domain(model: TicketModel) -> Ticket:
    """Convert ORM row to domain entity."""
    return Ticket(
        id=model.id,
        title=model.title,
        description=model.description,
        category=model.category,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        response_time_budget=model.response_time_budget,
        resolution_time_budget=model.resolution_time_budget,
        due_date=model.due_date,
        status=TicketStatus(model.status),
        priority=Priority(model.priority),
        assigned_to=model.assigned_to,
        assigned_at=model.assigned_at,
        first_response_at=model.first_response_at,
        resolved_at=model.resolved_at,
        version=model.version,
        tags=list(model.tags or []),
        internal_notes=_notes_from_json(model.internal_notes),
    )


def user_to_domain(model: UserModel) -> User:
    return User(
        id=model.id,
        name=model.name,
        email=model.email,
        role=UserRole(model.role),
        is_active=model.is_active,
        specializations=list(model.specializations or []),
    )


def _filter_conditions(ticket_filter: TicketFilter) -> list:
    conditions = []
    if ticket_filter.statuses is not None:
        conditions.append(TicketModel.status.in_([s.value for s in ticket_filter.statuses]))
    if ticket_filter.priorities is not None:
        conditions.append(TicketModel.priority.in_([p.value for p in ticket_filter.priorities]))
    if ticket_filter.unassigned_only:
        conditions.append(TicketModel.assigned_to.is_(None))
    if ticket_filter.due_from is not None:
        conditions.append(TicketModel.due_date >= ticket_filter.due_from)
    if ticket_filter.due_to is not None:
        conditions.append(TicketModel.due_date <= ticket_filter.due_to)
    if ticket_filter.due_before is not None:
        conditions.append(TicketModel.due_date < ticket_filter.due_before)
    if ticket_filter.created_before is not None:
        conditions.append(TicketModel.created_at < ticket_filter.created_before)
    if ticket_filter.updated_before is not None:
        conditions.append(TicketModel.updated_at < ticket_filter.updated_before)
    return conditions


# ========== SQLAlchemy implementations ==========

class SQLAlchemyTicketStore(ITicketStore):
    """
    SQLAlchemy implementation of the ticket store.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    async def find_tickets_matching(self, ticket_filter: TicketFilter) -> List[Ticket]:
        stmt = select(TicketModel)
        conditions = _filter_conditions(ticket_filter)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(TicketModel.due_date.asc())

        async with get_session_context() as session:
            result = await session.execute(stmt)
            return [ticket_to_domain(m) for m in result.scalars().all()]

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        async with get_session_context() as session:
            model = await session.get(TicketModel, ticket_id)
            return ticket_to_domain(model) if model else None

    async def create_ticket(self, ticket: Ticket) -> Ticket:
        ticket = copy.deepcopy(ticket)
        ticket.version = 0
        async with get_session_context() as session:
            session.add(TicketModel(id=ticket.id, version=0, **_ticket_columns(ticket)))
        return ticket

    async def save_ticket(self, ticket: Ticket, expected_version: int) -> Ticket:
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.id == ticket.id,
                TicketModel.version == expected_version,
            )
            .values(version=expected_version + 1, **_ticket_columns(ticket))
        )

        async with get_session_context() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                current = await session.scalar(
                    select(TicketModel.version).where(TicketModel.id == ticket.id)
                )
                if current is None:
                    raise ResourceNotFoundException("Ticket", ticket.id)
                raise VersionConflictException(ticket.id, expected_version, current)
            if result.rowcount != 1:
                raise RepositoryException(
                    f"Conditional update touched {result.rowcount} rows",
                    {"ticket_id": ticket.id}
                )

        saved = copy.deepcopy(ticket)
        saved.version = expected_version + 1
        return saved


class SQLAlchemyUserDirectory(IUserDirectory):
    """SQLAlchemy implementation of the user directory."""

    async def get_user(self, user_id: str) -> Optional[User]:
        async with get_session_context() as session:
            model = await session.get(UserModel, user_id)
            return user_to_domain(model) if model else None

    async def find_active_agents_by_specialization(self, specialization: str) -> List[User]:
        stmt = select(UserModel).where(
            UserModel.role == UserRole.AGENT.value,
            UserModel.is_active.is_(True),
        )
        async with get_session_context() as session:
            result = await session.execute(stmt)
            agents = [user_to_domain(m) for m in result.scalars().all()]
        # JSON containment is dialect specific; filter here
        return [a for a in agents if specialization in a.specializations]

    async def find_active_admins(self) -> List[User]:
        stmt = select(UserModel).where(
            UserModel.role == UserRole.ADMIN.value,
            UserModel.is_active.is_(True),
        )
        async with get_session_context() as session:
            result = await session.execute(stmt)
            return [user_to_domain(m) for m in result.scalars().all()]

    async def add_user(self, user: User) -> User:
        async with get_session_context() as session:
            session.add(UserModel(
                id=user.id,
                name=user.name,
                email=user.email,
                role=user.role.value,
                is_active=user.is_active,
                specializations=list(user.specializations),
            ))
        return user


# ========== In-memory implementations ==========

class InMemoryTicketStore(ITicketStore):
    """
    Process-local ticket store.

    Every read and write copies the ticket so callers never share state
    with the stored document.
    """

    def __init__(self):
        self._tickets: Dict[str, Ticket] = {}
        self._lock = asyncio.Lock()

    def add(self, ticket: Ticket) -> Ticket:
        """Seed a ticket as-is, keeping its version."""
        self._tickets[ticket.id] = copy.deepcopy(ticket)
        return ticket

    async def find_tickets_matching(self, ticket_filter: TicketFilter) -> List[Ticket]:
        async with self._lock:
            matched = [copy.deepcopy(t) for t in self._tickets.values() if ticket_filter.matches(t)]
        return sorted(matched, key=lambda t: t.due_date)

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        async with self._lock:
            ticket = self._tickets.get(ticket_id)
            return copy.deepcopy(ticket) if ticket else None

    async def create_ticket(self, ticket: Ticket) -> Ticket:
        async with self._lock:
            if ticket.id in self._tickets:
                raise RepositoryException(f"Ticket {ticket.id} already exists")
            stored = copy.deepcopy(ticket)
            stored.version = 0
            self._tickets[ticket.id] = stored
            return copy.deepcopy(stored)

    async def save_ticket(self, ticket: Ticket, expected_version: int) -> Ticket:
        async with self._lock:
            current = self._tickets.get(ticket.id)
            if current is None:
                raise ResourceNotFoundException("Ticket", ticket.id)
            if current.version != expected_version:
                raise VersionConflictException(ticket.id, expected_version, current.version)
            stored = copy.deepcopy(ticket)
            stored.version = expected_version + 1
            self._tickets[ticket.id] = stored
            return copy.deepcopy(stored)


class InMemoryUserDirectory(IUserDirectory):
    """Process-local user directory."""

    def __init__(self, users: Optional[List[User]] = None):
        self._users: Dict[str, User] = {}
        for user in users or []:
            self.add(user)

    def add(self, user: User) -> User:
        self._users[user.id] = user
        return user

    async def add_user(self, user: User) -> User:
        return self.add(user)

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def find_active_agents_by_specialization(self, specialization: str) -> List[User]:
        return [
            u for u in self._users.values()
            if u.role == UserRole.AGENT and u.is_active and specialization in u.specializations
        ]

    async def find_active_admins(self) -> List[User]:
        return [u for u in self._users.values() if u.role == UserRole.ADMIN and u.is_active]
