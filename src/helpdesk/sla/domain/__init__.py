"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Value Objects: SLAConfig (YAML tunables), SLAPolicy (deadline math and
  status classifier)
- Entities: ScanReport, SLAStats, TicketSLAView

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.sla.domain.entities import ScanReport, SLAStats, TicketSLAView
from helpdesk.sla.domain.value_objects import (
    SLAConfig,
    SLAPolicy,
    ISLAConfigProvider,
    StaticSLAConfigProvider,
)

__all__ = [
    "ScanReport",
    "SLAStats",
    "TicketSLAView",
    "SLAConfig",
    "SLAPolicy",
    "ISLAConfigProvider",
    "StaticSLAConfigProvider",
]
