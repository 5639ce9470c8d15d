"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for tickets and users.

Tags and internal notes are stored inline as JSON so a ticket stays a
single row and one conditional UPDATE replaces it atomically.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import Priority, TicketStatus, UserRole
from helpdesk.infrastructure.database import Base


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[TicketStatus] = mapped_column(String(20), nullable=False, index=True)
    priority: Mapped[Priority] = mapped_column(String(20), nullable=False, index=True)

    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # SLA tracking
    response_time_budget: Mapped[float] = mapped_column(Float, nullable=False)
    resolution_time_budget: Mapped[float] = mapped_column(Float, nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic lock
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # [ "tag", ... ] and [ {"text", "author" (null = system), "added_at"}, ... ]
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    internal_notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class UserModel(Base):
    """
    Database model for User entity.

    Maps to the 'users' table.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    specializations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
