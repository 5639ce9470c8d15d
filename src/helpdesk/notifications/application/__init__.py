"""
Notification Application Layer
==============================

Contains:
- Services: NotificationService
- Repository Interfaces: INotificationRepository, INotificationChannel
"""

from helpdesk.notifications.application.services import (
    NotificationService,
    INotificationRepository,
    INotificationChannel,
)

__all__ = [
    "NotificationService",
    "INotificationRepository",
    "INotificationChannel",
]
