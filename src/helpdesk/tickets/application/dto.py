"""
Ticket Application DTOs
=======================

Pydantic models for the ticket API boundary.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from helpdesk.config import Priority, TicketCategory, TicketStatus, SLAStatus


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for creating a ticket."""
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    category: TicketCategory
    priority: Priority = Field(default=Priority.MEDIUM)
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        """Tags are trimmed and capped at 20 characters."""
        cleaned = [t.strip() for t in v if t.strip()]
        for tag in cleaned:
            if len(tag) > 20:
                raise ValueError(f"tag '{tag}' exceeds 20 characters")
        return cleaned


class TicketUpdateDTO(BaseModel):
    """
    DTO for updating a ticket.

    ``version`` is the version the caller last read; the update is
    rejected with 409 when the ticket moved on since.
    """
    version: int = Field(..., ge=0, description="Expected current version")
    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    assigned_to: Optional[str] = None
    unassign: bool = Field(default=False, description="Clear the assignee")
    tags: Optional[List[str]] = None


# ========== Response DTOs ==========

class InternalNoteResponse(BaseModel):
    text: str
    author: Optional[str] = Field(None, description="null for system notes")
    added_at: datetime


class TicketResponse(BaseModel):
    """Response model for a ticket with derived SLA fields."""
    id: str
    title: str
    description: str
    category: str
    status: TicketStatus
    priority: Priority
    created_by: str
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime

    response_time_budget: float
    resolution_time_budget: float
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    due_date: datetime
    sla_status: SLAStatus
    time_remaining: Optional[int] = Field(None, description="Whole hours left, null when terminal")

    internal_notes: List[InternalNoteResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, ticket, policy, now: datetime, include_notes: bool = False) -> "TicketResponse":
        notes = []
        if include_notes:
            notes = [
                InternalNoteResponse(
                    text=n.text,
                    author=None if n.is_system else n.author,
                    added_at=n.added_at
                )
                for n in ticket.internal_notes
            ]
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category,
            status=ticket.status,
            priority=ticket.priority,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
            assigned_at=ticket.assigned_at,
            tags=list(ticket.tags),
            version=ticket.version,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            response_time_budget=ticket.response_time_budget,
            resolution_time_budget=ticket.resolution_time_budget,
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
            due_date=ticket.due_date,
            sla_status=ticket.sla_status(policy, now),
            time_remaining=ticket.time_remaining(now),
            internal_notes=notes,
        )
