"""
SLA Controllers (API Routes)
============================

FastAPI routes for SLA dashboards.

Controllers are thin - they delegate to ``SLAMonitorService``. The scans
themselves have no HTTP trigger; they run on the scheduler.
"""

from fastapi import APIRouter, Depends

from helpdesk.shared.api.dependencies import get_actor, get_sla_monitor
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import (
    SLAMonitorService,
    SLAStatsResponse,
    TicketSLAResponse,
)
from helpdesk.tickets.domain import Actor

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


SLA_STATS_EXAMPLE = {
    "total_tickets": 12,
    "on_time": 9,
    "breached": 3,
    "warning": 1,
    "sla_compliance": 75,
    "by_status": {
        "on_time": 5,
        "warning": 2,
        "response_breach": 0,
        "resolution_breach": 3,
        "completed": 2
    }
}


@router.get(
    "/stats",
    response_model=SLAStatsResponse,
    summary="Aggregate SLA statistics",
    description="""
    Counts over all non-cancelled tickets.

    - **on_time**: resolved/closed, or not yet past the due date
    - **breached**: open/in progress and past the due date
    - **warning**: open/in progress and due within the warning window
    """,
    responses={200: {"content": {"application/json": {"example": SLA_STATS_EXAMPLE}}}}
)
async def get_sla_stats(
    actor: Actor = Depends(get_actor),
    monitor: SLAMonitorService = Depends(get_sla_monitor),
) -> SLAStatsResponse:
    stats = await monitor.get_sla_stats()
    return SLAStatsResponse.from_domain(stats)


@router.get(
    "/tickets/{ticket_id}",
    response_model=TicketSLAResponse,
    summary="SLA status of one ticket"
)
async def get_ticket_sla(
    ticket_id: str,
    actor: Actor = Depends(get_actor),
    monitor: SLAMonitorService = Depends(get_sla_monitor),
) -> TicketSLAResponse:
    view = await monitor.get_ticket_sla(ticket_id)
    return TicketSLAResponse.from_domain(view)


# Export router
sla_router = router
