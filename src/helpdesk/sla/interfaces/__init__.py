"""
SLA Interfaces Layer
====================

Contains:
- Controllers: FastAPI route handlers
"""

from helpdesk.sla.interfaces.controllers import sla_router

__all__ = ["sla_router"]
