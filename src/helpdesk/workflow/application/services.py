"""
Workflow Application Services
=============================

``WorkflowEngine`` holds the rule registry and interprets rule actions.

It is called by the ticket-mutation boundary right after a successful
save and by the hourly sweep with the ``scheduled`` trigger. Every
mutating action goes through the ticket state machine and is saved as
its own versioned write; actions do not re-trigger rules.
"""

import copy
import random
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from helpdesk.config import (
    NotificationType, Priority, WorkflowTrigger,
)
from helpdesk.core import (
    PermissionDeniedException,
    ResourceNotFoundException,
    RuleEvaluationException,
    ValidationException,
)
from helpdesk.notifications.application import NotificationService
from helpdesk.shared.infrastructure.clock import Clock, utcnow
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.domain import ISLAConfigProvider
from helpdesk.tickets.application import ITicketStore, IUserDirectory, IWorkflowTrigger
from helpdesk.tickets.domain import Actor, Ticket, User
from helpdesk.workflow.application.dto import SampleTicketDTO, WorkflowRuleCreateDTO
from helpdesk.workflow.domain import (
    TICKET_ASSIGNEE,
    TICKET_CREATOR,
    AddTagAction,
    AssignToAgentAction,
    ChangePriorityAction,
    ChangeStatusAction,
    EscalateToAdminAction,
    SendNotificationAction,
    WorkflowRule,
    render_template,
)

logger = get_logger(__name__)

AgentSelector = Callable[[Sequence[User]], User]

SAMPLE_TICKET_ID = "test-ticket-id"


class WorkflowEngine(IWorkflowTrigger):
    """
    Rule registry and executor.

    Rules run in registration order. A failing rule is logged as a
    ``RuleEvaluationException`` and the remaining rules still run.
    """

    def __init__(
        self,
        store: ITicketStore,
        directory: IUserDirectory,
        notifier: NotificationService,
        config_provider: ISLAConfigProvider,
        selector: AgentSelector = random.choice,
        clock: Clock = utcnow
    ):
        self._store = store
        self._directory = directory
        self._notifier = notifier
        self._config_provider = config_provider
        self._selector = selector
        self._clock = clock
        self._rules: Dict[str, WorkflowRule] = {}

    # ========== Registry ==========

    def register_rule(self, name: str, rule: WorkflowRule) -> WorkflowRule:
        """Add ``rule`` under ``name``, replacing any rule of that name."""
        if rule.name != name:
            rule = rule.model_copy(update={"name": name})
        self._rules[name] = rule
        logger.info("Workflow rule registered", extra={"rule_name": name})
        return rule

    def remove_rule(self, name: str) -> None:
        if name not in self._rules:
            raise ResourceNotFoundException("WorkflowRule", name)
        del self._rules[name]
        logger.info("Workflow rule removed", extra={"rule_name": name})

    def get_rule(self, name: str) -> WorkflowRule:
        rule = self._rules.get(name)
        if rule is None:
            raise ResourceNotFoundException("WorkflowRule", name)
        return rule

    def list_rules(self) -> List[WorkflowRule]:
        return list(self._rules.values())

    def create_custom_rule(self, data: Union[WorkflowRuleCreateDTO, dict]) -> WorkflowRule:
        """Validate a user-authored rule and register it."""
        try:
            if isinstance(data, dict):
                data = WorkflowRuleCreateDTO.model_validate(data)
            rule = WorkflowRule.model_validate(data.model_dump())
        except ValidationError as e:
            raise ValidationException(
                "Invalid workflow rule",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            ) from e
        return self.register_rule(rule.name, rule)

    def get_workflow_stats(self) -> dict:
        rules_by_trigger: Dict[str, int] = {}
        for rule in self._rules.values():
            key = rule.trigger.value if rule.trigger else "any"
            rules_by_trigger[key] = rules_by_trigger.get(key, 0) + 1
        return {
            "total_rules": len(self._rules),
            "active_rules": sum(1 for r in self._rules.values() if r.enabled),
            "rules_by_trigger": rules_by_trigger,
        }

    def test_rule(self, name: str, sample: Optional[SampleTicketDTO] = None) -> dict:
        """Evaluate a rule's conditions against a sample ticket without running actions."""
        rule = self.get_rule(name)
        now = self._clock()
        ticket = self._sample_ticket(sample or SampleTicketDTO(), now)
        condition_result = rule.evaluate(ticket, now)
        return {
            "condition_result": condition_result,
            "would_execute": condition_result and rule.enabled,
        }

    def _sample_ticket(self, sample: SampleTicketDTO, now: datetime) -> Ticket:
        policy = self._config_provider.get_policy()
        created_at = sample.created_at or now
        return Ticket(
            id=SAMPLE_TICKET_ID,
            title=sample.title,
            description="",
            category=sample.category,
            created_by=sample.created_by,
            created_at=created_at,
            updated_at=sample.updated_at or created_at,
            response_time_budget=policy.response_budget_hours(sample.priority),
            resolution_time_budget=policy.resolution_budget_hours(sample.priority),
            due_date=policy.due_date(sample.priority, created_at),
            status=sample.status,
            priority=sample.priority,
            assigned_to=sample.assigned_to,
            resolved_at=sample.resolved_at,
        )

    # ========== Execution ==========

    async def execute_rules(
        self,
        ticket: Ticket,
        trigger: Union[WorkflowTrigger, Sequence[WorkflowTrigger]],
        actor: Optional[Actor] = None
    ) -> Ticket:
        """
        Run every enabled rule matching ``trigger`` whose conditions hold.

        ``trigger`` may be a list when one mutation fires several events;
        a rule matching more than one of them still runs once. ``actor`` is
        the human whose change fired the trigger; None means system
        authority. Returns the ticket as last saved.
        """
        triggers = [trigger] if isinstance(trigger, WorkflowTrigger) else list(trigger)
        trigger_values = [t.value for t in triggers]

        for rule in list(self._rules.values()):
            if not rule.enabled or not any(rule.matches_trigger(t) for t in triggers):
                continue

            try:
                if not rule.evaluate(ticket, self._clock()):
                    continue

                logger.info(
                    "Executing workflow rule",
                    extra={"rule_name": rule.name, "ticket_id": ticket.id, "triggers": trigger_values}
                )
                for action in rule.actions:
                    ticket = await self._apply(action, ticket, actor)
            except Exception as e:
                error = RuleEvaluationException(rule.name, ticket.id, e)
                logger.error(
                    "Workflow rule failed",
                    extra={
                        "rule_name": rule.name,
                        "ticket_id": ticket.id,
                        "triggers": trigger_values,
                        "error_type": type(e).__name__,
                        "error": error.message
                    }
                )

        return ticket

    async def _apply(self, action, ticket: Ticket, actor: Optional[Actor]) -> Ticket:
        now = self._clock()
        policy = self._config_provider.get_policy()

        if isinstance(action, AssignToAgentAction):
            return await self._assign(action, ticket, actor, now)

        if isinstance(action, ChangePriorityAction):
            return await self._mutate(
                ticket, actor, lambda t: t.change_priority(action.value, policy, now)
            )

        if isinstance(action, ChangeStatusAction):
            return await self._mutate(ticket, actor, lambda t: t.change_status(action.value, now))

        if isinstance(action, AddTagAction):
            return await self._mutate(ticket, actor, lambda t: t.add_tag(action.value, now))

        if isinstance(action, SendNotificationAction):
            recipient = self._resolve_recipient(action.recipient, ticket)
            if recipient:
                await self._notifier.notify(
                    recipient,
                    action.kind,
                    render_template(action.title, ticket),
                    render_template(action.message, ticket),
                    ticket_id=ticket.id,
                    priority=ticket.priority,
                )
            return ticket

        if isinstance(action, EscalateToAdminAction):
            await self._notifier.notify(
                None,
                NotificationType.TICKET_ESCALATED,
                render_template(action.title, ticket),
                render_template(action.message, ticket),
                ticket_id=ticket.id,
                priority=Priority.URGENT,
            )
            return ticket

        raise ValidationException(f"Unsupported workflow action {type(action).__name__}")

    async def _assign(
        self,
        action: AssignToAgentAction,
        ticket: Ticket,
        actor: Optional[Actor],
        now: datetime
    ) -> Ticket:
        agent_id = action.agent_id
        if agent_id is None:
            agents = await self._directory.find_active_agents_by_specialization(action.specialization)
            if not agents:
                logger.info(
                    "No available agent for auto-assignment",
                    extra={"ticket_id": ticket.id, "specialization": action.specialization}
                )
                return ticket
            agent_id = self._selector(agents).id

        saved = await self._mutate(ticket, actor, lambda t: t.assign(agent_id, now))
        if saved is not ticket:
            await self._notifier.notify(
                agent_id,
                NotificationType.TICKET_ASSIGNED,
                "Ticket Assigned",
                f'You have been assigned ticket "{saved.title}"',
                ticket_id=saved.id,
                priority=saved.priority,
            )
        return saved

    async def _mutate(
        self,
        ticket: Ticket,
        actor: Optional[Actor],
        change: Callable[[Ticket], bool]
    ) -> Ticket:
        """Apply ``change`` to a copy and save it; unchanged tickets are not written."""
        if actor is not None and not ticket.can_be_modified(actor.role, actor.user_id):
            raise PermissionDeniedException(ticket.id, actor.user_id, actor.role.value)

        working = copy.deepcopy(ticket)
        if not change(working):
            return ticket
        return await self._store.save_ticket(working, ticket.version)

    @staticmethod
    def _resolve_recipient(recipient: str, ticket: Ticket) -> Optional[str]:
        if recipient == TICKET_CREATOR:
            return ticket.created_by
        if recipient == TICKET_ASSIGNEE:
            return ticket.assigned_to
        return recipient
