"""
Ticket Infrastructure Layer
===========================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: SQLAlchemy and in-memory ticket stores and user directories

This layer implements the repository interfaces defined in the application layer.
"""

from helpdesk.tickets.infrastructure.models import TicketModel, UserModel
from helpdesk.tickets.infrastructure.repositories import (
    SQLAlchemyTicketStore,
    SQLAlchemyUserDirectory,
    InMemoryTicketStore,
    InMemoryUserDirectory,
)

__all__ = [
    # Models
    "TicketModel",
    "UserModel",
    # Repositories
    "SQLAlchemyTicketStore",
    "SQLAlchemyUserDirectory",
    "InMemoryTicketStore",
    "InMemoryUserDirectory",
]
