"""
Workflow Domain Layer
=====================

Contains:
- Entities: WorkflowRule, RuleCondition and the typed action descriptors

Rules are data; this layer has no dependencies on infrastructure.
"""

from helpdesk.workflow.domain.entities import (
    TICKET_ASSIGNEE,
    TICKET_CREATOR,
    AddTagAction,
    AssignToAgentAction,
    ChangePriorityAction,
    ChangeStatusAction,
    EscalateToAdminAction,
    RuleAction,
    RuleCondition,
    SendNotificationAction,
    WorkflowRule,
    render_template,
)

__all__ = [
    "TICKET_ASSIGNEE",
    "TICKET_CREATOR",
    "AddTagAction",
    "AssignToAgentAction",
    "ChangePriorityAction",
    "ChangeStatusAction",
    "EscalateToAdminAction",
    "RuleAction",
    "RuleCondition",
    "SendNotificationAction",
    "WorkflowRule",
    "render_template",
]
