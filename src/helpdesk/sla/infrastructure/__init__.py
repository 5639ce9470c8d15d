"""
SLA Infrastructure Layer
========================

Contains:
- External: SLAConfigManager (YAML + watchdog hot-reload), SLAScheduler (APScheduler)
"""

from helpdesk.sla.infrastructure.external import (
    ConfigFileHandler,
    SLAConfigManager,
    SLAScheduler,
)

__all__ = [
    "ConfigFileHandler",
    "SLAConfigManager",
    "SLAScheduler",
]
