"""
Notification Infrastructure Models
==================================

SQLAlchemy ORM model for the notification log.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import NotificationType, Priority
from helpdesk.infrastructure.database import Base


class NotificationModel(Base):
    """
    Database model for Notification entity.

    Maps to the 'notifications' table.
    """
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    kind: Mapped[NotificationType] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    ticket_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    priority: Mapped[Priority] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    delivered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Cool-down lookups filter on all three
    __table_args__ = (
        Index("ix_notifications_ticket_kind_created", "ticket_id", "kind", "created_at"),
    )
