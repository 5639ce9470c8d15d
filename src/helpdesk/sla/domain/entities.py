"""
SLA Domain Entities
====================

Result objects produced by the SLA monitor and escalation scans.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from helpdesk.config import SLAStatus


@dataclass
class ScanReport:
    """Outcome of one monitor or escalation pass."""

    scan: str
    started_at: datetime
    scanned: int = 0
    warnings_sent: int = 0
    breaches_sent: int = 0
    escalated: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ticket_ids: List[str] = field(default_factory=list)

    def record_failure(self, ticket_id: str) -> None:
        self.failed += 1
        self.failed_ticket_ids.append(ticket_id)

    def to_dict(self) -> dict:
        return {
            "scan": self.scan,
            "started_at": self.started_at.isoformat(),
            "scanned": self.scanned,
            "warnings_sent": self.warnings_sent,
            "breaches_sent": self.breaches_sent,
            "escalated": self.escalated,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass
class SLAStats:
    """
    Aggregate SLA counts for dashboards.

    ``on_time`` counts tickets that are completed or still before their
    due date; ``breached`` and ``warning`` only look at live tickets.
    """

    total_tickets: int = 0
    on_time: int = 0
    breached: int = 0
    warning: int = 0
    by_status: Dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in SLAStatus}
    )

    @property
    def sla_compliance(self) -> int:
        """Percentage of tickets on time, 100 when there are none."""
        if self.total_tickets == 0:
            return 100
        return round(self.on_time / self.total_tickets * 100)


@dataclass(frozen=True)
class TicketSLAView:
    """Derived SLA information for one ticket at one instant."""

    ticket_id: str
    evaluated_at: datetime
    sla_status: SLAStatus
    due_date: datetime
    time_remaining_hours: Optional[int]
    response_budget_hours: float
    resolution_budget_hours: float
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
