"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket, InternalNote, User, Actor
- The SYSTEM author sentinel used for scheduler/workflow audit notes
- Value Objects: TicketFilter

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.tickets.domain.entities import (
    Actor,
    Author,
    InternalNote,
    SYSTEM,
    SystemActor,
    Ticket,
    User,
)
from helpdesk.tickets.domain.value_objects import TicketFilter

__all__ = [
    "Actor",
    "Author",
    "InternalNote",
    "SYSTEM",
    "SystemActor",
    "Ticket",
    "User",
    "TicketFilter",
]
