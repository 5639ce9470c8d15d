"""
Ticket Application Layer
========================

Contains:
- Services: TicketService (the mutation boundary)
- Repository Interfaces: ITicketStore, IUserDirectory, IWorkflowTrigger
- DTOs: request/response models for the ticket API

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.tickets.application.dto import (
    TicketCreateDTO,
    TicketUpdateDTO,
    TicketResponse,
    InternalNoteResponse,
)
from helpdesk.tickets.application.services import (
    TicketService,
    ITicketStore,
    IUserDirectory,
    IWorkflowTrigger,
)

__all__ = [
    # DTOs
    "TicketCreateDTO",
    "TicketUpdateDTO",
    "TicketResponse",
    "InternalNoteResponse",
    # Services
    "TicketService",
    # Repository Interfaces
    "ITicketStore",
    "IUserDirectory",
    "IWorkflowTrigger",
]
