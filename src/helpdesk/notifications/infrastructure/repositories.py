"""
Notification Infrastructure Repositories
========================================

SQLAlchemy and in-memory implementations of the notification log.
"""

import asyncio
import copy
from datetime import datetime
from typing import List

from sqlalchemy import select, update

from helpdesk.config import NotificationType, Priority
from helpdesk.infrastructure.database import get_session_context
from helpdesk.notifications.application.services import INotificationRepository
from helpdesk.notifications.domain import Notification
from helpdesk.notifications.infrastructure.models import NotificationModel


def notification_to_domain(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        recipient_id=model.recipient_id,
        kind=NotificationType(model.kind),
        title=model.title,
        message=model.message,
        created_at=model.created_at,
        ticket_id=model.ticket_id,
        priority=Priority(model.priority),
        delivered=model.delivered,
        delivered_at=model.delivered_at,
    )


class SQLAlchemyNotificationRepository(INotificationRepository):
    """SQLAlchemy implementation of the notification log."""

    async def create(self, notification: Notification) -> Notification:
        async with get_session_context() as session:
            session.add(NotificationModel(
                id=notification.id,
                recipient_id=notification.recipient_id,
                kind=notification.kind.value,
                title=notification.title,
                message=notification.message,
                ticket_id=notification.ticket_id,
                priority=notification.priority.value,
                created_at=notification.created_at,
                delivered=notification.delivered,
                delivered_at=notification.delivered_at,
            ))
        return notification

    async def exists_since(
        self,
        ticket_id: str,
        kind: NotificationType,
        since: datetime
    ) -> bool:
        stmt = (
            select(NotificationModel.id)
            .where(
                NotificationModel.ticket_id == ticket_id,
                NotificationModel.kind == kind.value,
                NotificationModel.created_at > since,
            )
            .limit(1)
        )
        async with get_session_context() as session:
            return await session.scalar(stmt) is not None

    async def list_for_ticket(self, ticket_id: str) -> List[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.ticket_id == ticket_id)
            .order_by(NotificationModel.created_at.asc())
        )
        async with get_session_context() as session:
            result = await session.execute(stmt)
            return [notification_to_domain(m) for m in result.scalars().all()]

    async def mark_delivered(self, notification_id: str, at: datetime) -> None:
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(delivered=True, delivered_at=at)
        )
        async with get_session_context() as session:
            await session.execute(stmt)


class InMemoryNotificationRepository(INotificationRepository):
    """Process-local notification log."""

    def __init__(self):
        self._items: List[Notification] = []
        self._lock = asyncio.Lock()

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    async def create(self, notification: Notification) -> Notification:
        async with self._lock:
            self._items.append(copy.deepcopy(notification))
        return notification

    async def exists_since(
        self,
        ticket_id: str,
        kind: NotificationType,
        since: datetime
    ) -> bool:
        async with self._lock:
            return any(
                n.ticket_id == ticket_id and n.kind == kind and n.created_at > since
                for n in self._items
            )

    async def list_for_ticket(self, ticket_id: str) -> List[Notification]:
        async with self._lock:
            matched = [copy.deepcopy(n) for n in self._items if n.ticket_id == ticket_id]
        return sorted(matched, key=lambda n: n.created_at)

    async def mark_delivered(self, notification_id: str, at: datetime) -> None:
        async with self._lock:
            for n in self._items:
                if n.id == notification_id:
                    n.mark_delivered(at)
