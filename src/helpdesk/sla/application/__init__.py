"""
SLA Application Layer
=====================

Contains:
- Services: SLAMonitorService (warning/breach scan, stats),
  EscalationService (neglect scan, escalation action)
- DTOs: response models for the SLA API

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.sla.application.dto import (
    SLAStatsResponse,
    TicketSLAResponse,
)
from helpdesk.sla.application.services import (
    SLAMonitorService,
    EscalationService,
)

__all__ = [
    # DTOs
    "SLAStatsResponse",
    "TicketSLAResponse",
    # Services
    "SLAMonitorService",
    "EscalationService",
]
