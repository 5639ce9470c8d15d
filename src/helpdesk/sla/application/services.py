"""
SLA Application Services
========================

Application layer services that orchestrate the SLA scans.

``SLAMonitorService`` runs the 15-minute warning/breach pass and answers
dashboard queries. ``EscalationService`` runs the hourly neglect pass and
owns the escalation action the breach path also uses.

Both scans follow the same failure policy: a single ticket failing is
logged as a ``ScanIterationException`` and the loop moves on; a lost
optimistic-lock race is a skip, retried naturally on the next tick.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from helpdesk.config import (
    NotificationType, Priority, TicketStatus, WorkflowTrigger,
    ACTIVE_STATUSES, HIGH_PRIORITIES,
)
from helpdesk.core import (
    ResourceNotFoundException,
    ScanIterationException,
    VersionConflictException,
)
from helpdesk.notifications.application import NotificationService
from helpdesk.shared.infrastructure.clock import Clock, utcnow
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.domain import (
    ISLAConfigProvider,
    ScanReport,
    SLAPolicy,
    SLAStats,
    TicketSLAView,
)
from helpdesk.tickets.application import ITicketStore, IUserDirectory, IWorkflowTrigger
from helpdesk.tickets.domain import SYSTEM, Ticket, TicketFilter

logger = get_logger(__name__)


def _log_contained(report: ScanReport, step: str, ticket_id: str, error: Exception) -> None:
    failure = ScanIterationException(step, ticket_id, error)
    report.record_failure(ticket_id)
    logger.error(
        "Scan iteration failed",
        extra={
            "scan": report.scan,
            "step": step,
            "ticket_id": ticket_id,
            "error_type": type(error).__name__,
            "error": failure.message
        }
    )


def _hours(value: float) -> str:
    return f"{value:g} hour" + ("" if value == 1 else "s")


class EscalationService:
    """
    Escalation Policy.

    Forces neglected or breached tickets to urgent, records a system note
    and tells every active admin, all in one ticket write.
    """

    def __init__(
        self,
        store: ITicketStore,
        notifier: NotificationService,
        config_provider: ISLAConfigProvider,
        workflow: Optional[IWorkflowTrigger] = None,
        clock: Clock = utcnow
    ):
        self._store = store
        self._notifier = notifier
        self._config_provider = config_provider
        self._workflow = workflow
        self._clock = clock

    async def escalate_ticket(
        self,
        ticket: Ticket,
        reasons: List[str],
        now: Optional[datetime] = None
    ) -> Optional[Ticket]:
        """
        Escalate ``ticket`` as read by the caller.

        Returns the saved ticket, or None when another writer got there
        first. The priority change is a no-op for urgent tickets; the note
        and the admin broadcast happen every time.
        """
        now = now or self._clock()
        expected_version = ticket.version
        reason = "; ".join(reasons)

        ticket.change_priority(Priority.URGENT, self._config_provider.get_policy(), now)
        ticket.add_internal_note(f"Auto-escalated by system: {reason}", SYSTEM, now)

        try:
            saved = await self._store.save_ticket(ticket, expected_version)
        except VersionConflictException as e:
            logger.info(
                "Escalation skipped, ticket changed concurrently",
                extra={
                    "ticket_id": ticket.id,
                    "expected_version": e.expected_version,
                    "current_version": e.current_version
                }
            )
            return None

        logger.info(
            "Ticket escalated",
            extra={"ticket_id": saved.id, "version": saved.version, "reason": reason}
        )

        await self._notifier.notify(
            None,
            NotificationType.TICKET_ESCALATED,
            "Ticket Escalated",
            f'Ticket "{saved.title}" has been escalated: {reason}',
            ticket_id=saved.id,
            priority=Priority.URGENT,
        )
        return saved

    async def check_escalations(self) -> ScanReport:
        """
        Hourly pass: escalate unassigned-and-stale and stale high priority
        tickets, then feed resolved tickets to the scheduled workflow rules.
        """
        now = self._clock()
        policy = self._config_provider.get_policy()
        report = ScanReport(scan="escalation_check", started_at=now)

        candidates: Dict[str, Tuple[Ticket, List[str]]] = {}

        unassigned = await self._store.find_tickets_matching(TicketFilter(
            statuses=[TicketStatus.OPEN],
            unassigned_only=True,
            created_before=now - policy.unassigned_threshold,
        ))
        for ticket in unassigned:
            candidates.setdefault(ticket.id, (ticket, []))[1].append(
                f"Unassigned for more than {_hours(policy.config.unassigned_escalation_hours)}"
            )

        stale = await self._store.find_tickets_matching(TicketFilter(
            statuses=ACTIVE_STATUSES,
            priorities=HIGH_PRIORITIES,
            updated_before=now - policy.stale_high_priority_threshold,
        ))
        for ticket in stale:
            candidates.setdefault(ticket.id, (ticket, []))[1].append(
                f"High priority ticket without update for more than "
                f"{_hours(policy.config.stale_high_priority_hours)}"
            )

        for ticket, reasons in candidates.values():
            report.scanned += 1
            try:
                if await self.escalate_ticket(ticket, reasons, now):
                    report.escalated += 1
                else:
                    report.skipped += 1
            except Exception as e:
                _log_contained(report, "escalation", ticket.id, e)

        await self._run_scheduled_rules(report)

        logger.info("Escalation check completed", extra=report.to_dict())
        return report

    async def _run_scheduled_rules(self, report: ScanReport) -> None:
        if self._workflow is None:
            return
        resolved = await self._store.find_tickets_matching(
            TicketFilter(statuses=[TicketStatus.RESOLVED])
        )
        for ticket in resolved:
            try:
                await self._workflow.execute_rules(ticket, WorkflowTrigger.SCHEDULED)
            except Exception as e:
                _log_contained(report, "scheduled_rules", ticket.id, e)


class SLAMonitorService:
    """
    SLA Monitor.

    Fires each warning and breach notification at most once per cool-down
    window, using the notification log as the dedup source.
    """

    def __init__(
        self,
        store: ITicketStore,
        directory: IUserDirectory,
        notifier: NotificationService,
        config_provider: ISLAConfigProvider,
        escalation: EscalationService,
        clock: Clock = utcnow
    ):
        self._store = store
        self._directory = directory
        self._notifier = notifier
        self._config_provider = config_provider
        self._escalation = escalation
        self._clock = clock

    @property
    def policy(self) -> SLAPolicy:
        return self._config_provider.get_policy()

    async def check_sla_status(self) -> ScanReport:
        """Warning pass over the due-soon window, then breach pass over overdue tickets."""
        now = self._clock()
        policy = self.policy
        report = ScanReport(scan="sla_check", started_at=now)

        window_start, window_end = policy.warning_window(now)
        due_soon = await self._store.find_tickets_matching(TicketFilter(
            statuses=ACTIVE_STATUSES,
            due_from=window_start,
            due_to=window_end,
        ))
        for ticket in due_soon:
            report.scanned += 1
            try:
                if await self._send_warning(ticket, policy, now):
                    report.warnings_sent += 1
                else:
                    report.skipped += 1
            except Exception as e:
                _log_contained(report, "sla_warning", ticket.id, e)

        overdue = await self._store.find_tickets_matching(TicketFilter(
            statuses=ACTIVE_STATUSES,
            due_before=now,
        ))
        for ticket in overdue:
            report.scanned += 1
            try:
                if not await self._send_breach(ticket, policy, now):
                    report.skipped += 1
                    continue
                report.breaches_sent += 1
                escalated = await self._escalation.escalate_ticket(
                    ticket, ["SLA breach: resolution due date passed"], now
                )
                if escalated:
                    report.escalated += 1
            except Exception as e:
                _log_contained(report, "sla_breach", ticket.id, e)

        logger.info("SLA check completed", extra=report.to_dict())
        return report

    async def _send_warning(self, ticket: Ticket, policy: SLAPolicy, now: datetime) -> bool:
        if await self._notifier.has_recent(
            ticket.id, NotificationType.SLA_WARNING, policy.warning_cooldown, now
        ):
            return False

        remaining = ticket.time_remaining(now) or 0
        sent = await self._notifier.notify_many(
            [ticket.created_by, ticket.assigned_to],
            NotificationType.SLA_WARNING,
            "SLA Warning",
            f'Ticket "{ticket.title}" is due in {_hours(remaining)}',
            ticket_id=ticket.id,
            priority=ticket.priority,
        )
        return bool(sent)

    async def _send_breach(self, ticket: Ticket, policy: SLAPolicy, now: datetime) -> bool:
        if await self._notifier.has_recent(
            ticket.id, NotificationType.SLA_BREACH, policy.breach_cooldown, now
        ):
            return False

        admins = await self._directory.find_active_admins()
        sent = await self._notifier.notify_many(
            [ticket.created_by, ticket.assigned_to] + [a.id for a in admins],
            NotificationType.SLA_BREACH,
            "SLA Breach",
            f'Ticket "{ticket.title}" has breached its SLA deadline',
            ticket_id=ticket.id,
            priority=Priority.URGENT,
        )
        return bool(sent)

    # ========== Queries ==========

    async def get_sla_stats(self) -> SLAStats:
        now = self._clock()
        policy = self.policy
        _, warning_end = policy.warning_window(now)

        tickets = await self._store.find_tickets_matching(TicketFilter(statuses=[
            TicketStatus.OPEN, TicketStatus.IN_PROGRESS,
            TicketStatus.RESOLVED, TicketStatus.CLOSED,
        ]))

        stats = SLAStats(total_tickets=len(tickets))
        for ticket in tickets:
            stats.by_status[ticket.sla_status(policy, now).value] += 1
            if ticket.is_completed or ticket.due_date > now:
                stats.on_time += 1
            if ticket.is_active and ticket.due_date < now:
                stats.breached += 1
            elif ticket.is_active and now <= ticket.due_date <= warning_end:
                stats.warning += 1
        return stats

    async def get_ticket_sla(self, ticket_id: str) -> TicketSLAView:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        now = self._clock()
        return TicketSLAView(
            ticket_id=ticket.id,
            evaluated_at=now,
            sla_status=ticket.sla_status(self.policy, now),
            due_date=ticket.due_date,
            time_remaining_hours=ticket.time_remaining(now),
            response_budget_hours=ticket.response_time_budget,
            resolution_budget_hours=ticket.resolution_time_budget,
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
        )
