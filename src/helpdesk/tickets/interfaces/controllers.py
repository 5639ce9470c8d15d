"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for creating, reading and updating tickets.

Controllers are thin - they delegate to ``TicketService``. Typed
application errors are mapped to HTTP codes by the shared exception
handler.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status

from helpdesk.config import UserRole
from helpdesk.shared.api.dependencies import get_actor, get_clock_now, get_ticket_service
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application import (
    TicketCreateDTO,
    TicketResponse,
    TicketService,
    TicketUpdateDTO,
)
from helpdesk.tickets.domain import Actor

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


def _can_see_notes(actor: Actor) -> bool:
    return actor.role in (UserRole.AGENT, UserRole.ADMIN)


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Create a new ticket. The resolution due date is derived from the
    priority: urgent 2h, high 8h, medium 24h, low 72h after creation.
    The `ticket_created` workflow rules run before the response returns.
    """
)
async def create_ticket(
    data: TicketCreateDTO,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service),
    now: datetime = Depends(get_clock_now),
) -> TicketResponse:
    ticket = await service.create_ticket(data, actor.user_id)
    return TicketResponse.from_domain(ticket, service.policy, now, _can_see_notes(actor))


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket with its SLA status"
)
async def get_ticket(
    ticket_id: str,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service),
    now: datetime = Depends(get_clock_now),
) -> TicketResponse:
    ticket = await service.get_ticket(ticket_id)
    return TicketResponse.from_domain(ticket, service.policy, now, _can_see_notes(actor))


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update a ticket",
    description="""
    Apply status, priority, assignment and tag changes as one write.

    `version` must equal the ticket's current version; otherwise the
    request fails with **409** and the body carries `current_version`.
    """
)
async def update_ticket(
    ticket_id: str,
    changes: TicketUpdateDTO,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service),
    now: datetime = Depends(get_clock_now),
) -> TicketResponse:
    ticket = await service.update_ticket(ticket_id, changes, actor)
    return TicketResponse.from_domain(ticket, service.policy, now, _can_see_notes(actor))


# Export router
tickets_router = router
