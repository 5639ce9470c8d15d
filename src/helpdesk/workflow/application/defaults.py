"""
Default Workflow Rules
======================

Rules registered at startup. They have no trigger and so run on every
lifecycle event, including the hourly ``scheduled`` sweep of resolved
tickets that drives the auto-close rules.
"""

from typing import List

from helpdesk.config import (
    ConditionField, ConditionOperator, NotificationType, Priority, TicketStatus,
)
from helpdesk.workflow.domain import (
    TICKET_CREATOR,
    AssignToAgentAction,
    ChangeStatusAction,
    EscalateToAdminAction,
    RuleCondition,
    SendNotificationAction,
    WorkflowRule,
)


def build_default_rules(
    auto_assign_category: str = "technical",
    auto_assign_specialization: str = "technical",
    auto_close_resolved_days: int = 3,
    auto_close_inactive_days: int = 7
) -> List[WorkflowRule]:
    return [
        WorkflowRule(
            name=f"auto_assign_{auto_assign_category}",
            description=(
                f"Assign unassigned {auto_assign_category} tickets to a random "
                f"active {auto_assign_specialization} specialist"
            ),
            conditions=[
                RuleCondition(field=ConditionField.CATEGORY, operator=ConditionOperator.EQUALS,
                              value=auto_assign_category),
                RuleCondition(field=ConditionField.ASSIGNED_TO, operator=ConditionOperator.EQUALS,
                              value=None),
            ],
            actions=[AssignToAgentAction(specialization=auto_assign_specialization)],
        ),
        WorkflowRule(
            name="escalate_high_priority",
            description="Notify all admins about urgent tickets that are still open",
            conditions=[
                RuleCondition(field=ConditionField.PRIORITY, operator=ConditionOperator.EQUALS,
                              value=Priority.URGENT),
                RuleCondition(field=ConditionField.STATUS, operator=ConditionOperator.EQUALS,
                              value=TicketStatus.OPEN),
            ],
            actions=[
                EscalateToAdminAction(
                    title="Urgent Ticket Requires Attention",
                    message='Urgent ticket "{ticket_title}" needs immediate attention.',
                ),
            ],
        ),
        WorkflowRule(
            name="auto_close_inactive",
            description=f"Close resolved tickets not updated for {auto_close_inactive_days} days",
            conditions=[
                RuleCondition(field=ConditionField.STATUS, operator=ConditionOperator.EQUALS,
                              value=TicketStatus.RESOLVED),
                RuleCondition(field=ConditionField.UPDATED_AT, operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                              value=auto_close_inactive_days),
            ],
            actions=[
                ChangeStatusAction(value=TicketStatus.CLOSED),
                SendNotificationAction(
                    recipient=TICKET_CREATOR,
                    kind=NotificationType.TICKET_CLOSED,
                    title="Ticket Auto-Closed",
                    message='Your ticket "{ticket_title}" has been automatically closed due to inactivity.',
                ),
            ],
        ),
        WorkflowRule(
            name="auto_close_resolved",
            description=f"Close tickets {auto_close_resolved_days} days after resolution",
            conditions=[
                RuleCondition(field=ConditionField.STATUS, operator=ConditionOperator.EQUALS,
                              value=TicketStatus.RESOLVED),
                RuleCondition(field=ConditionField.RESOLVED_AT, operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                              value=auto_close_resolved_days),
            ],
            actions=[
                ChangeStatusAction(value=TicketStatus.CLOSED),
                SendNotificationAction(
                    recipient=TICKET_CREATOR,
                    kind=NotificationType.TICKET_CLOSED,
                    title="Ticket Closed",
                    message='Your ticket "{ticket_title}" has been closed. Thank you for using our support!',
                ),
            ],
        ),
    ]
