"""
Notification Infrastructure Layer
=================================

Contains:
- Models: SQLAlchemy ORM model for the notification log
- Repositories: SQLAlchemy and in-memory notification logs
- External: webhook delivery channel with circuit breaker
"""

from helpdesk.notifications.infrastructure.models import NotificationModel
from helpdesk.notifications.infrastructure.repositories import (
    SQLAlchemyNotificationRepository,
    InMemoryNotificationRepository,
)
from helpdesk.notifications.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    WebhookNotificationChannel,
)

__all__ = [
    "NotificationModel",
    "SQLAlchemyNotificationRepository",
    "InMemoryNotificationRepository",
    "CircuitBreaker",
    "CircuitState",
    "WebhookNotificationChannel",
]
