"""
Notification Domain Entities
============================

Pure Python domain entities for the notification log.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from helpdesk.config import NotificationType, Priority


@dataclass
class Notification:
    """
    A message addressed to one user.

    The record is the dedup source for SLA warnings and breaches, so it
    is written before delivery is attempted.
    """

    recipient_id: str
    kind: NotificationType
    title: str
    message: str
    created_at: datetime
    ticket_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    delivered: bool = False
    delivered_at: Optional[datetime] = None
    id: str = field(default_factory=lambda: str(uuid4()))

    def mark_delivered(self, at: datetime) -> None:
        self.delivered = True
        self.delivered_at = at

    def to_payload(self) -> dict:
        """JSON-ready representation pushed to delivery channels."""
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "type": self.kind.value,
            "title": self.title,
            "message": self.message,
            "ticket_id": self.ticket_id,
            "priority": self.priority.value,
            "created_at": self.created_at.isoformat(),
        }
