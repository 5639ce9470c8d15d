"""
Notification Application Services
=================================

``NotificationService`` is the notifier every other context calls.

Records are persisted before ``notify`` returns; delivery to channels
runs as background tasks so a slow webhook never stalls a scan. Every
failure is wrapped as ``NotificationDeliveryException``, logged and
contained: a notification never rolls back the ticket write that caused it.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set

from helpdesk.config import NotificationType, Priority
from helpdesk.core import NotificationDeliveryException
from helpdesk.notifications.domain import Notification
from helpdesk.shared.infrastructure.clock import Clock, utcnow
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application.services import IUserDirectory

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class INotificationRepository(ABC):
    """Interface for the notification log."""

    @abstractmethod
    async def create(self, notification: Notification) -> Notification:
        """Persist a new notification."""

    @abstractmethod
    async def exists_since(
        self,
        ticket_id: str,
        kind: NotificationType,
        since: datetime
    ) -> bool:
        """Whether a notification of ``kind`` for the ticket was created after ``since``."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Notification]:
        """All notifications about a ticket, oldest first."""

    @abstractmethod
    async def mark_delivered(self, notification_id: str, at: datetime) -> None:
        """Flag a notification as delivered."""


class INotificationChannel(ABC):
    """A delivery mechanism (webhook, email, socket push)."""

    name: str = "channel"

    @abstractmethod
    async def deliver(self, notification: Notification) -> bool:
        """
        Push one notification.

        Returns False when the channel skipped it (not configured, circuit
        open). Raises NotificationDeliveryException when delivery failed.
        """


# ========== Application Services ==========

class NotificationService:
    """Records notifications and dispatches them to channels."""

    def __init__(
        self,
        repository: INotificationRepository,
        directory: IUserDirectory,
        channels: Optional[List[INotificationChannel]] = None,
        clock: Clock = utcnow
    ):
        self._repository = repository
        self._directory = directory
        self._channels = list(channels or [])
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()

    async def notify(
        self,
        recipient_id: Optional[str],
        kind: NotificationType,
        title: str,
        message: str,
        ticket_id: Optional[str] = None,
        priority: Priority = Priority.MEDIUM
    ) -> List[Notification]:
        """
        Notify one user, or every active admin when ``recipient_id`` is None.

        Never raises; failures are logged.
        """
        if recipient_id is None:
            return await self.broadcast_to_admins(kind, title, message, ticket_id, priority)
        return await self.notify_many([recipient_id], kind, title, message, ticket_id, priority)

    async def broadcast_to_admins(
        self,
        kind: NotificationType,
        title: str,
        message: str,
        ticket_id: Optional[str] = None,
        priority: Priority = Priority.MEDIUM
    ) -> List[Notification]:
        try:
            admins = await self._directory.find_active_admins()
        except Exception as e:
            self._log_failure(
                NotificationDeliveryException("admin lookup failed", {"error": str(e)}),
                ticket_id, kind
            )
            return []
        return await self.notify_many([a.id for a in admins], kind, title, message, ticket_id, priority)

    async def notify_many(
        self,
        recipients: Iterable[Optional[str]],
        kind: NotificationType,
        title: str,
        message: str,
        ticket_id: Optional[str] = None,
        priority: Priority = Priority.MEDIUM
    ) -> List[Notification]:
        """Notify each distinct recipient once, in the order given."""
        created = []
        for recipient_id in dict.fromkeys(r for r in recipients if r):
            notification = Notification(
                recipient_id=recipient_id,
                kind=kind,
                title=title,
                message=message,
                created_at=self._clock(),
                ticket_id=ticket_id,
                priority=priority,
            )
            try:
                await self._repository.create(notification)
            except Exception as e:
                self._log_failure(
                    NotificationDeliveryException(
                        "could not record notification",
                        {"recipient_id": recipient_id, "error": str(e)}
                    ),
                    ticket_id, kind
                )
                continue

            created.append(notification)
            self._dispatch(notification)

        if created:
            logger.info(
                "Notifications recorded",
                extra={
                    "ticket_id": ticket_id,
                    "notification_type": kind.value,
                    "recipients": len(created)
                }
            )
        return created

    async def has_recent(
        self,
        ticket_id: str,
        kind: NotificationType,
        within: timedelta,
        now: Optional[datetime] = None
    ) -> bool:
        """Whether ``kind`` was already sent for the ticket inside the cool-down."""
        now = now or self._clock()
        return await self._repository.exists_since(ticket_id, kind, now - within)

    async def list_for_ticket(self, ticket_id: str) -> List[Notification]:
        return await self._repository.list_for_ticket(ticket_id)

    @property
    def pending_deliveries(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries; called at shutdown."""
        if not self._pending:
            return
        logger.info("Draining notification deliveries", extra={"pending": len(self._pending)})
        await asyncio.wait(set(self._pending), timeout=timeout)

    async def close(self) -> None:
        for channel in self._channels:
            close = getattr(channel, "close", None)
            if close is not None:
                await close()

    # ========== Delivery ==========

    def _dispatch(self, notification: Notification) -> None:
        for channel in self._channels:
            task = asyncio.create_task(self._deliver(channel, notification))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, channel: INotificationChannel, notification: Notification) -> None:
        try:
            delivered = await channel.deliver(notification)
            if delivered:
                await self._repository.mark_delivered(notification.id, self._clock())
        except NotificationDeliveryException as e:
            self._log_failure(e, notification.ticket_id, notification.kind)
        except Exception as e:
            self._log_failure(
                NotificationDeliveryException(
                    f"channel {channel.name} failed",
                    {"notification_id": notification.id, "error": str(e)}
                ),
                notification.ticket_id, notification.kind
            )

    def _log_failure(
        self,
        error: NotificationDeliveryException,
        ticket_id: Optional[str],
        kind: NotificationType
    ) -> None:
        logger.error(
            "Notification failed",
            extra={
                "ticket_id": ticket_id,
                "notification_type": kind.value,
                "error_type": type(error).__name__,
                "error": error.message,
                **error.details
            }
        )
