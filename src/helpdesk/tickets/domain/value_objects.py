"""
Ticket Value Objects
====================

``TicketFilter`` is the store-agnostic query the monitor and escalation
scans use. The SQL store translates it into WHERE clauses; the in-memory
store evaluates ``matches`` directly.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from helpdesk.config import Priority, TicketStatus


@dataclass(frozen=True)
class TicketFilter:
    """Conjunction of optional predicates over ticket fields."""

    statuses: Optional[Sequence[TicketStatus]] = None
    priorities: Optional[Sequence[Priority]] = None
    unassigned_only: bool = False
    due_from: Optional[datetime] = None      # inclusive
    due_to: Optional[datetime] = None        # inclusive
    due_before: Optional[datetime] = None    # exclusive
    created_before: Optional[datetime] = None
    updated_before: Optional[datetime] = None

    def matches(self, ticket) -> bool:
        if self.statuses is not None and ticket.status not in self.statuses:
            return False
        if self.priorities is not None and ticket.priority not in self.priorities:
            return False
        if self.unassigned_only and ticket.assigned_to is not None:
            return False
        if self.due_from is not None and ticket.due_date < self.due_from:
            return False
        if self.due_to is not None and ticket.due_date > self.due_to:
            return False
        if self.due_before is not None and not ticket.due_date < self.due_before:
            return False
        if self.created_before is not None and not ticket.created_at < self.created_before:
            return False
        if self.updated_before is not None and not ticket.updated_at < self.updated_before:
            return False
        return True
