"""
Workflow Application Layer
==========================

Contains:
- Services: WorkflowEngine (rule registry and executor)
- Default rules shipped at startup
- DTOs: request/response models for rule management
"""

from helpdesk.workflow.application.defaults import build_default_rules
from helpdesk.workflow.application.dto import (
    WorkflowRuleCreateDTO,
    SampleTicketDTO,
    RuleTestRequest,
    RuleTestResponse,
    WorkflowStatsResponse,
)
from helpdesk.workflow.application.services import WorkflowEngine, AgentSelector

__all__ = [
    "build_default_rules",
    "WorkflowRuleCreateDTO",
    "SampleTicketDTO",
    "RuleTestRequest",
    "RuleTestResponse",
    "WorkflowStatsResponse",
    "WorkflowEngine",
    "AgentSelector",
]
