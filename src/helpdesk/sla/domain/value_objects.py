"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

``SLAConfig`` is the YAML-backed tunable set; ``SLAPolicy`` turns it into
pure deadline arithmetic and the priority-ordered SLA status classifier.
Nothing here touches storage or the clock.
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from helpdesk.config import (
    Priority, SLAStatus, TicketStatus,
    COMPLETED_STATUSES, TERMINAL_STATUSES, VALID_PRIORITIES,
)

DEFAULT_RESOLUTION_HOURS = {
    Priority.URGENT.value: 2,
    Priority.HIGH.value: 8,
    Priority.MEDIUM.value: 24,
    Priority.LOW.value: 72,
}
DEFAULT_RESPONSE_HOURS = 24


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    All durations are hours unless the field name says otherwise.
    """
    resolution_hours: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_RESOLUTION_HOURS),
        description="Resolution budget in hours by priority"
    )
    response_hours: Dict[str, float] = Field(
        default_factory=lambda: {p.value: DEFAULT_RESPONSE_HOURS for p in VALID_PRIORITIES},
        description="Response budget in hours by priority"
    )
    warning_lead_hours: float = Field(
        default=24, gt=0,
        description="Tickets due within this many hours classify as warning"
    )
    warning_window_start_hours: float = Field(default=1, ge=0)
    warning_window_end_hours: float = Field(default=2, gt=0)
    warning_cooldown_minutes: int = Field(default=60, ge=0)
    breach_cooldown_minutes: int = Field(default=120, ge=0)
    unassigned_escalation_hours: float = Field(default=24, gt=0)
    stale_high_priority_hours: float = Field(default=4, gt=0)

    @field_validator("resolution_hours")
    @classmethod
    def validate_resolution_hours(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Back-fill priorities missing from the file."""
        for priority in VALID_PRIORITIES:
            v.setdefault(priority.value, DEFAULT_RESOLUTION_HOURS[priority.value])
        for priority, hours in v.items():
            if hours <= 0:
                raise ValueError(f"resolution budget for {priority} must be positive")
        return v

    @field_validator("response_hours")
    @classmethod
    def validate_response_hours(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Back-fill priorities missing from the file."""
        for priority in VALID_PRIORITIES:
            v.setdefault(priority.value, DEFAULT_RESPONSE_HOURS)
        return v

    @field_validator("warning_window_end_hours")
    @classmethod
    def validate_warning_window(cls, v: float, info) -> float:
        """The warning window must not be empty."""
        start = info.data.get("warning_window_start_hours", 0)
        if v <= start:
            raise ValueError("warning_window_end_hours must be after warning_window_start_hours")
        return v


class SLAPolicy:
    """
    Pure functions for SLA calculations.

    Unrecognised priorities fall back to the medium budget.
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self.config = config or SLAConfig()

    def _hours_for(self, table: Dict[str, float], priority) -> float:
        key = priority.value if isinstance(priority, Priority) else str(priority)
        if key not in table:
            key = Priority.MEDIUM.value
        return table[key]

    def resolution_budget_hours(self, priority) -> float:
        return self._hours_for(self.config.resolution_hours, priority)

    def response_budget_hours(self, priority) -> float:
        return self._hours_for(self.config.response_hours, priority)

    def resolution_budget(self, priority) -> timedelta:
        return timedelta(hours=self.resolution_budget_hours(priority))

    def due_date(self, priority, created_at: datetime) -> datetime:
        """
        Resolution deadline for a ticket.

        Always anchored on the ticket's creation time, also when recomputed
        after a priority change.
        """
        return created_at + self.resolution_budget(priority)

    def classify(
        self,
        now: datetime,
        status: TicketStatus,
        due_date: datetime,
        first_response_at: Optional[datetime],
        response_budget_hours: float
    ) -> SLAStatus:
        """
        Priority-ordered SLA status classifier.

        Earlier rules win: completed, response breach, resolution breach,
        warning, on time.
        """
        if status in COMPLETED_STATUSES or status == TicketStatus.CANCELLED:
            return SLAStatus.COMPLETED

        if first_response_at and now > first_response_at + timedelta(hours=response_budget_hours):
            return SLAStatus.RESPONSE_BREACH

        if now > due_date:
            return SLAStatus.RESOLUTION_BREACH

        if now > due_date - timedelta(hours=self.config.warning_lead_hours):
            return SLAStatus.WARNING

        return SLAStatus.ON_TIME

    @staticmethod
    def time_remaining_hours(now: datetime, status: TicketStatus, due_date: datetime) -> Optional[int]:
        """Whole hours until the due date (rounded up, never negative); None once terminal."""
        if status in TERMINAL_STATUSES:
            return None
        remaining = (due_date - now).total_seconds()
        return math.ceil(remaining / 3600) if remaining > 0 else 0

    # ========== Scan windows ==========

    def warning_window(self, now: datetime) -> tuple[datetime, datetime]:
        """Inclusive due-date window picked up by the warning scan."""
        return (
            now + timedelta(hours=self.config.warning_window_start_hours),
            now + timedelta(hours=self.config.warning_window_end_hours),
        )

    @property
    def warning_cooldown(self) -> timedelta:
        return timedelta(minutes=self.config.warning_cooldown_minutes)

    @property
    def breach_cooldown(self) -> timedelta:
        return timedelta(minutes=self.config.breach_cooldown_minutes)

    @property
    def unassigned_threshold(self) -> timedelta:
        return timedelta(hours=self.config.unassigned_escalation_hours)

    @property
    def stale_high_priority_threshold(self) -> timedelta:
        return timedelta(hours=self.config.stale_high_priority_hours)


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""

    def get_policy(self) -> SLAPolicy:
        return SLAPolicy(self.get_config())


class StaticSLAConfigProvider(ISLAConfigProvider):
    """Fixed configuration, for tests and embedded use."""

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config = config or SLAConfig()

    def get_config(self) -> SLAConfig:
        return self._config
