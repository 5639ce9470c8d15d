"""
Workflow Domain Entities
========================

Workflow rules as plain data.

A rule is a name, an optional trigger, an AND-list of field/operator/value
conditions and an ordered list of typed actions. Conditions are evaluated
here; actions are descriptors the engine interprets, so rules serialize
to JSON/YAML and carry no behavior of their own.
"""

from datetime import datetime
from operator import ge, gt, le, lt
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from helpdesk.config import (
    ConditionField, ConditionOperator, NotificationType, Priority,
    TicketStatus, WorkflowTrigger, ELAPSED_DAY_FIELDS,
)

SECONDS_PER_DAY = 24 * 60 * 60

# Recipient sentinels understood by send_notification
TICKET_CREATOR = "ticket_creator"
TICKET_ASSIGNEE = "ticket_assignee"

_EQUALITY_OPERATORS = (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS)
_ORDERING_OPERATORS = {
    ConditionOperator.GREATER_THAN: gt,
    ConditionOperator.LESS_THAN: lt,
    ConditionOperator.GREATER_THAN_OR_EQUAL: ge,
    ConditionOperator.LESS_THAN_OR_EQUAL: le,
}

_TICKET_ATTRIBUTES = {
    ConditionField.CATEGORY: "category",
    ConditionField.PRIORITY: "priority",
    ConditionField.STATUS: "status",
    ConditionField.ASSIGNED_TO: "assigned_to",
    ConditionField.CREATED_AT: "created_at",
    ConditionField.UPDATED_AT: "updated_at",
    ConditionField.RESOLVED_AT: "resolved_at",
}


def render_template(text: str, ticket) -> str:
    """Substitute ``{ticket_title}`` and ``{ticket_id}``."""
    return text.replace("{ticket_title}", ticket.title).replace("{ticket_id}", ticket.id)


class RuleCondition(BaseModel):
    """
    One field/operator/value test.

    Timestamp fields are compared as elapsed days (float, not calendar
    days) with the ordering operators; the other fields by identity with
    equals/not_equals.
    """
    field: ConditionField
    operator: ConditionOperator
    value: Any = None

    @model_validator(mode="after")
    def validate_operator_for_field(self) -> "RuleCondition":
        if self.field in ELAPSED_DAY_FIELDS:
            if self.operator not in _ORDERING_OPERATORS:
                raise ValueError(f"{self.field.value} supports ordering operators only")
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
                raise ValueError(f"{self.field.value} needs a numeric value in days")
            self.value = float(self.value)
            return self

        if self.operator not in _EQUALITY_OPERATORS:
            raise ValueError(f"{self.field.value} supports equals/not_equals only")
        if self.field == ConditionField.PRIORITY:
            self.value = Priority(self.value).value
        elif self.field == ConditionField.STATUS:
            self.value = TicketStatus(self.value).value
        elif self.value is not None:
            self.value = str(self.value)
        elif self.field != ConditionField.ASSIGNED_TO:
            raise ValueError(f"{self.field.value} needs a value")
        return self

    def evaluate(self, ticket, now: datetime) -> bool:
        actual = getattr(ticket, _TICKET_ATTRIBUTES[self.field])

        if self.field in ELAPSED_DAY_FIELDS:
            if actual is None:
                return False
            elapsed_days = (now - actual).total_seconds() / SECONDS_PER_DAY
            return _ORDERING_OPERATORS[self.operator](elapsed_days, self.value)

        if isinstance(actual, (Priority, TicketStatus)):
            actual = actual.value
        if self.operator == ConditionOperator.EQUALS:
            return actual == self.value
        return actual != self.value


# ========== Actions ==========

class AssignToAgentAction(BaseModel):
    """
    Assign to ``agent_id``, or to an agent picked from the active
    specialists in ``specialization``. No agent available is a no-op.
    """
    type: Literal["assign_to_agent"] = "assign_to_agent"
    agent_id: Optional[str] = None
    specialization: Optional[str] = None

    @model_validator(mode="after")
    def validate_target(self) -> "AssignToAgentAction":
        if (self.agent_id is None) == (self.specialization is None):
            raise ValueError("assign_to_agent needs exactly one of agent_id or specialization")
        return self


class ChangePriorityAction(BaseModel):
    type: Literal["change_priority"] = "change_priority"
    value: Priority


class ChangeStatusAction(BaseModel):
    type: Literal["change_status"] = "change_status"
    value: TicketStatus


class AddTagAction(BaseModel):
    type: Literal["add_tag"] = "add_tag"
    value: str = Field(..., min_length=1, max_length=20)


class SendNotificationAction(BaseModel):
    """``recipient`` is a user id or one of the ticket_creator/ticket_assignee sentinels."""
    type: Literal["send_notification"] = "send_notification"
    recipient: str = TICKET_CREATOR
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    kind: NotificationType = NotificationType.WORKFLOW_NOTIFICATION


class EscalateToAdminAction(BaseModel):
    type: Literal["escalate_to_admin"] = "escalate_to_admin"
    title: str = "Ticket Escalated by Workflow"
    message: str = 'Ticket "{ticket_title}" has been escalated by workflow rule.'


RuleAction = Annotated[
    Union[
        AssignToAgentAction,
        ChangePriorityAction,
        ChangeStatusAction,
        AddTagAction,
        SendNotificationAction,
        EscalateToAdminAction,
    ],
    Field(discriminator="type"),
]


class WorkflowRule(BaseModel):
    """A named trigger/conditions/actions entry of the rule registry."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    trigger: Optional[WorkflowTrigger] = Field(
        default=None,
        description="Lifecycle event the rule reacts to; null matches every event"
    )
    conditions: List[RuleCondition] = Field(default_factory=list)
    actions: List[RuleAction] = Field(default_factory=list)
    enabled: bool = True

    def matches_trigger(self, trigger: WorkflowTrigger) -> bool:
        return self.trigger is None or self.trigger == trigger

    def evaluate(self, ticket, now: datetime) -> bool:
        """AND over the conditions, stopping at the first false one."""
        return all(condition.evaluate(ticket, now) for condition in self.conditions)
