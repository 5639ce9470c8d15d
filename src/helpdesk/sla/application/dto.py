"""
SLA Application DTOs
====================

Response models for the SLA endpoints.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from helpdesk.config import SLAStatus
from helpdesk.sla.domain import SLAStats, TicketSLAView


class SLAStatsResponse(BaseModel):
    """Aggregate SLA counts for dashboards."""
    total_tickets: int = Field(..., description="Non-cancelled tickets")
    on_time: int
    breached: int
    warning: int
    sla_compliance: int = Field(..., description="Percentage on time, 100 when empty")
    by_status: Dict[str, int]

    @classmethod
    def from_domain(cls, stats: SLAStats) -> "SLAStatsResponse":
        return cls(
            total_tickets=stats.total_tickets,
            on_time=stats.on_time,
            breached=stats.breached,
            warning=stats.warning,
            sla_compliance=stats.sla_compliance,
            by_status=dict(stats.by_status),
        )


class TicketSLAResponse(BaseModel):
    """Derived SLA view of a single ticket."""
    ticket_id: str
    evaluated_at: datetime
    sla_status: SLAStatus
    due_date: datetime
    time_remaining: Optional[int] = Field(None, description="Whole hours, null when terminal")
    response_time_budget: float
    resolution_time_budget: float
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, view: TicketSLAView) -> "TicketSLAResponse":
        return cls(
            ticket_id=view.ticket_id,
            evaluated_at=view.evaluated_at,
            sla_status=view.sla_status,
            due_date=view.due_date,
            time_remaining=view.time_remaining_hours,
            response_time_budget=view.response_budget_hours,
            resolution_time_budget=view.resolution_budget_hours,
            first_response_at=view.first_response_at,
            resolved_at=view.resolved_at,
        )
