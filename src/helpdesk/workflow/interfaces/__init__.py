"""
Workflow Interfaces Layer
=========================

Contains:
- Controllers: FastAPI route handlers
"""

from helpdesk.workflow.interfaces.controllers import workflow_router

__all__ = ["workflow_router"]
