"""
Workflow Application DTOs
=========================

Request/response models for rule management.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from helpdesk.config import Priority, TicketStatus, WorkflowTrigger
from helpdesk.workflow.domain import RuleAction, RuleCondition


class WorkflowRuleCreateDTO(BaseModel):
    """
    DTO for a user-authored rule.

    Custom rules default to the ``ticket_updated`` trigger.
    """
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    trigger: Optional[WorkflowTrigger] = WorkflowTrigger.TICKET_UPDATED
    conditions: List[RuleCondition] = Field(default_factory=list)
    actions: List[RuleAction] = Field(..., min_length=1)
    enabled: bool = True


class SampleTicketDTO(BaseModel):
    """Ticket fields a rule condition can look at, for dry runs."""
    title: str = "Sample ticket"
    category: str = "general"
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    created_by: str = "sample-user"
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class RuleTestRequest(BaseModel):
    rule_name: str
    ticket: SampleTicketDTO = Field(default_factory=SampleTicketDTO)


class RuleTestResponse(BaseModel):
    condition_result: bool
    would_execute: bool


class WorkflowStatsResponse(BaseModel):
    total_rules: int
    active_rules: int
    rules_by_trigger: Dict[str, int]
