"""
Tests for the workflow rule registry and executor.
"""

from datetime import timedelta

import pytest

from helpdesk.config import (
    NotificationType, Priority, TicketCategory, TicketStatus, UserRole, WorkflowTrigger,
)
from helpdesk.core import ResourceNotFoundException, ValidationException
from helpdesk.tickets.domain import Actor, User
from helpdesk.tickets.infrastructure import InMemoryUserDirectory
from helpdesk.workflow.application import SampleTicketDTO, WorkflowEngine
from helpdesk.workflow.domain import (
    AddTagAction,
    AssignToAgentAction,
    ChangeStatusAction,
    EscalateToAdminAction,
    RuleCondition,
    WorkflowRule,
)

from tests.conftest import ADMIN_IDS, AGENT_ID, CREATOR_ID, T0, notifications_of


def _tag_rule(name, tag, trigger=None, **condition):
    conditions = [RuleCondition(**condition)] if condition else []
    return WorkflowRule(
        name=name, trigger=trigger, conditions=conditions, actions=[AddTagAction(value=tag)]
    )


class TestAutoAssignment:
    """The default auto-assign rule."""

    @pytest.mark.asyncio
    async def test_technical_ticket_assigned_to_specialist(
        self, workflow_with_defaults, ticket_factory, notification_repo
    ):
        ticket = ticket_factory(category=TicketCategory.TECHNICAL.value)

        result = await workflow_with_defaults.execute_rules(ticket, WorkflowTrigger.TICKET_CREATED)

        assert result.assigned_to == AGENT_ID
        assert result.assigned_at == T0
        assert result.version == 1
        assigned = notifications_of(notification_repo, NotificationType.TICKET_ASSIGNED, ticket.id)
        assert [(n.recipient_id, n.title) for n in assigned] == [(AGENT_ID, "Ticket Assigned")]

    @pytest.mark.asyncio
    async def test_no_specialist_is_a_no_op(
        self, store, notifier, config_provider, clock, ticket_factory
    ):
        engine = WorkflowEngine(store, InMemoryUserDirectory(), notifier, config_provider, clock=clock)
        engine.register_rule("assign", WorkflowRule(
            name="assign", actions=[AssignToAgentAction(specialization="technical")]
        ))
        ticket = ticket_factory(category=TicketCategory.TECHNICAL.value)

        result = await engine.execute_rules(ticket, WorkflowTrigger.TICKET_CREATED)

        assert result.assigned_to is None
        assert (await store.get_ticket(ticket.id)).version == 0

    @pytest.mark.asyncio
    async def test_selector_picks_among_specialists(
        self, store, directory, notifier, config_provider, clock, ticket_factory
    ):
        directory.add(User(id="agent-3", name="Robin", email="robin@example.com",
                           role=UserRole.AGENT, specializations=["technical"]))
        engine = WorkflowEngine(
            store, directory, notifier, config_provider,
            selector=lambda agents: agents[-1], clock=clock,
        )
        engine.register_rule("assign", WorkflowRule(
            name="assign", actions=[AssignToAgentAction(specialization="technical")]
        ))
        ticket = ticket_factory()

        result = await engine.execute_rules(ticket, WorkflowTrigger.TICKET_CREATED)

        assert result.assigned_to == "agent-3"

    @pytest.mark.asyncio
    async def test_assigned_ticket_is_not_reassigned(self, workflow_with_defaults, ticket_factory):
        ticket = ticket_factory(category=TicketCategory.TECHNICAL.value, assigned_to="agent-2")

        result = await workflow_with_defaults.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        assert result.assigned_to == "agent-2"
        assert result.version == 0


class TestExecution:
    """Rule matching, action effects and failure isolation."""

    @pytest.mark.asyncio
    async def test_failing_rule_does_not_block_later_rules(self, workflow, ticket_factory):
        workflow.register_rule("reopen", WorkflowRule(
            name="reopen",
            conditions=[RuleCondition(field="status", operator="equals", value="cancelled")],
            actions=[ChangeStatusAction(value=TicketStatus.OPEN)],
        ))
        workflow.register_rule(
            "flag", _tag_rule("flag", "needs-review", field="status", operator="equals", value="cancelled")
        )
        ticket = ticket_factory(status=TicketStatus.CANCELLED)

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        assert result.status == TicketStatus.CANCELLED
        assert result.tags == ["needs-review"]

    @pytest.mark.asyncio
    async def test_trigger_and_enabled_filter_rules(self, workflow, ticket_factory):
        workflow.register_rule("on_create", _tag_rule("on_create", "created", WorkflowTrigger.TICKET_CREATED))
        workflow.register_rule("on_update", _tag_rule("on_update", "updated", WorkflowTrigger.TICKET_UPDATED))
        disabled = _tag_rule("disabled", "never").model_copy(update={"enabled": False})
        workflow.register_rule("disabled", disabled)
        ticket = ticket_factory()

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        assert result.tags == ["updated"]

    @pytest.mark.asyncio
    async def test_existing_tag_is_not_rewritten(self, workflow, ticket_factory):
        workflow.register_rule("vip", _tag_rule("vip", "vip"))
        ticket = ticket_factory(tags=["vip"])

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        assert result.version == 0

    @pytest.mark.asyncio
    async def test_change_priority_recomputes_due_date(self, workflow, ticket_factory):
        workflow.create_custom_rule({
            "name": "bump_billing",
            "conditions": [{"field": "category", "operator": "equals", "value": "billing"}],
            "actions": [{"type": "change_priority", "value": "high"}],
        })
        ticket = ticket_factory(category="billing")

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        assert result.priority == Priority.HIGH
        assert result.due_date == T0 + timedelta(hours=8)

    @pytest.mark.asyncio
    async def test_notification_templates_are_rendered(self, workflow, ticket_factory, notification_repo):
        workflow.create_custom_rule({
            "name": "ack",
            "trigger": "ticket_created",
            "actions": [
                {"type": "send_notification", "title": "Received",
                 "message": 'We got "{ticket_title}" ({ticket_id})'},
                {"type": "send_notification", "recipient": "ticket_assignee",
                 "title": "Heads up", "message": "New ticket"},
            ],
        })
        ticket = ticket_factory()

        await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_CREATED)

        sent = notifications_of(notification_repo, NotificationType.WORKFLOW_NOTIFICATION, ticket.id)
        assert len(sent) == 1
        assert sent[0].recipient_id == CREATOR_ID
        assert sent[0].message == f'We got "Printer is on fire" ({ticket.id})'

    @pytest.mark.asyncio
    async def test_elapsed_days_condition(self, workflow, ticket_factory):
        workflow.register_rule("old", _tag_rule("old", "old", field="createdAt", operator="greater_than", value=2))
        old = ticket_factory(created_at=T0 - timedelta(days=3))
        young = ticket_factory(created_at=T0 - timedelta(days=1))

        assert (await workflow.execute_rules(old, WorkflowTrigger.TICKET_UPDATED)).tags == ["old"]
        assert (await workflow.execute_rules(young, WorkflowTrigger.TICKET_UPDATED)).tags == []

    @pytest.mark.asyncio
    async def test_escalate_to_admin_reaches_active_admins_only(
        self, workflow, ticket_factory, notification_repo
    ):
        workflow.register_rule("page_admins", WorkflowRule(
            name="page_admins",
            conditions=[RuleCondition(field="priority", operator="equals", value="urgent")],
            actions=[EscalateToAdminAction()],
        ))
        ticket = ticket_factory(priority=Priority.URGENT)

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        escalated = notifications_of(notification_repo, NotificationType.TICKET_ESCALATED, ticket.id)
        assert sorted(n.recipient_id for n in escalated) == sorted(ADMIN_IDS)
        assert escalated[0].title == "Ticket Escalated by Workflow"
        assert result.version == 0

    @pytest.mark.asyncio
    async def test_change_status_to_resolved_stamps_timestamps(self, workflow, store, ticket_factory):
        workflow.register_rule("resolve", WorkflowRule(
            name="resolve", actions=[ChangeStatusAction(value=TicketStatus.RESOLVED)]
        ))
        ticket = ticket_factory(created_at=T0 - timedelta(hours=2))

        result = await workflow.execute_rules(ticket, WorkflowTrigger.TICKET_UPDATED)

        stored = await store.get_ticket(ticket.id)
        assert stored.status == TicketStatus.RESOLVED
        assert stored.resolved_at == T0
        assert stored.first_response_at == T0
        assert stored.version == 1
        assert result.version == 1

    @pytest.mark.asyncio
    async def test_rule_matching_several_triggers_runs_once(
        self, workflow, ticket_factory, notification_repo
    ):
        workflow.register_rule("page_admins", WorkflowRule(name="page_admins", actions=[EscalateToAdminAction()]))
        ticket = ticket_factory()

        await workflow.execute_rules(
            ticket, [WorkflowTrigger.TICKET_UPDATED, WorkflowTrigger.TICKET_ASSIGNED]
        )

        escalated = notifications_of(notification_repo, NotificationType.TICKET_ESCALATED, ticket.id)
        assert len(escalated) == len(ADMIN_IDS)

    @pytest.mark.asyncio
    async def test_actor_without_permission_cannot_mutate(self, workflow, ticket_factory):
        workflow.register_rule("tag", _tag_rule("tag", "touched"))
        ticket = ticket_factory(assigned_to=AGENT_ID)

        result = await workflow.execute_rules(
            ticket, WorkflowTrigger.TICKET_UPDATED, Actor("agent-2", UserRole.AGENT)
        )

        assert result.tags == []
        assert result.version == 0


class TestRegistry:
    """Rule management operations."""

    def test_register_replaces_rule_with_same_name(self, workflow):
        workflow.register_rule("a", _tag_rule("a", "one"))
        workflow.register_rule("b", _tag_rule("b", "two"))
        workflow.register_rule("a", _tag_rule("a", "three"))

        rules = workflow.list_rules()
        assert [r.name for r in rules] == ["a", "b"]
        assert rules[0].actions[0].value == "three"

    def test_custom_rule_defaults_to_updated_trigger(self, workflow):
        rule = workflow.create_custom_rule({
            "name": "flag_bugs",
            "conditions": [{"field": "category", "operator": "equals", "value": "bug_report"}],
            "actions": [{"type": "add_tag", "value": "bug"}],
        })

        assert rule.trigger == WorkflowTrigger.TICKET_UPDATED
        assert workflow.get_rule("flag_bugs") == rule

    @pytest.mark.parametrize("rule", [
        {"name": "r", "conditions": [{"field": "createdAt", "operator": "equals", "value": 1}],
         "actions": [{"type": "add_tag", "value": "x"}]},
        {"name": "r", "conditions": [{"field": "priority", "operator": "equals", "value": "critical"}],
         "actions": [{"type": "add_tag", "value": "x"}]},
        {"name": "r", "conditions": [{"field": "category", "operator": "greater_than", "value": "x"}],
         "actions": [{"type": "add_tag", "value": "x"}]},
        {"name": "r", "actions": [{"type": "delete_ticket"}]},
        {"name": "r", "actions": [{"type": "assign_to_agent"}]},
        {"name": "r", "actions": []},
    ])
    def test_invalid_custom_rule_is_rejected(self, workflow, rule):
        with pytest.raises(ValidationException) as exc_info:
            workflow.create_custom_rule(rule)

        assert exc_info.value.details["errors"]
        assert workflow.list_rules() == []

    def test_remove_rule(self, workflow):
        workflow.register_rule("a", _tag_rule("a", "one"))

        workflow.remove_rule("a")

        assert workflow.list_rules() == []

    def test_remove_unknown_rule(self, workflow):
        with pytest.raises(ResourceNotFoundException):
            workflow.remove_rule("missing")

    def test_stats(self, workflow_with_defaults):
        workflow_with_defaults.create_custom_rule({
            "name": "custom", "actions": [{"type": "add_tag", "value": "x"}], "enabled": False,
        })

        stats = workflow_with_defaults.get_workflow_stats()

        assert stats == {
            "total_rules": 5,
            "active_rules": 4,
            "rules_by_trigger": {"any": 4, "ticket_updated": 1},
        }


class TestRuleDryRun:
    """test_rule evaluates conditions without running actions."""

    def test_matching_sample(self, workflow_with_defaults):
        result = workflow_with_defaults.test_rule(
            "escalate_high_priority", SampleTicketDTO(priority=Priority.URGENT)
        )
        assert result == {"condition_result": True, "would_execute": True}

    def test_non_matching_sample(self, workflow_with_defaults):
        result = workflow_with_defaults.test_rule("escalate_high_priority", SampleTicketDTO())
        assert result == {"condition_result": False, "would_execute": False}

    def test_disabled_rule_would_not_execute(self, workflow):
        workflow.register_rule("off", _tag_rule("off", "x").model_copy(update={"enabled": False}))

        result = workflow.test_rule("off")

        assert result == {"condition_result": True, "would_execute": False}

    def test_unknown_rule(self, workflow):
        with pytest.raises(ResourceNotFoundException):
            workflow.test_rule("missing")
