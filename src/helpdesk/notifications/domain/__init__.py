"""
Notification Domain Layer
=========================

Contains:
- Entities: Notification
"""

from helpdesk.notifications.domain.entities import Notification

__all__ = ["Notification"]
