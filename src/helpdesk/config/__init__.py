"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-sla-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Storage ==========
    store_backend: Literal["database", "memory"] = Field(
        default="database",
        description="Ticket/user/notification storage backend"
    )
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    scheduler_enabled: bool = Field(
        default=True,
        description="Start the SLA/escalation scheduler on startup"
    )
    sla_check_interval_minutes: int = Field(
        default=15,
        description="Minutes between SLA warning/breach scans",
        ge=1
    )
    escalation_check_interval_minutes: int = Field(
        default=60,
        description="Minutes between escalation scans",
        ge=1
    )

    # ========== Notifications ==========
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook URL notifications are pushed to"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for webhook calls",
        ge=0.1,
        le=30
    )

    # ========== Workflow ==========
    workflow_rules_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file with additional workflow rules"
    )
    auto_assign_category: str = Field(
        default="technical",
        description="Ticket category auto-assigned to specialists"
    )
    auto_assign_specialization: str = Field(
        default="technical",
        description="Agent specialization used for auto-assignment"
    )
    auto_close_resolved_days: int = Field(
        default=3,
        description="Days after resolution before a ticket is auto-closed",
        ge=1
    )
    auto_close_inactive_days: int = Field(
        default=7,
        description="Days without update before a resolved ticket is auto-closed",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class TicketCategory(str, Enum):
    """Ticket categories."""
    TECHNICAL = "technical"
    BILLING = "billing"
    GENERAL = "general"
    BUG_REPORT = "bug_report"
    FEATURE_REQUEST = "feature_request"


class SLAStatus(str, Enum):
    """Derived SLA status of a ticket."""
    ON_TIME = "on_time"
    WARNING = "warning"
    RESPONSE_BREACH = "response_breach"
    RESOLUTION_BREACH = "resolution_breach"
    COMPLETED = "completed"


class UserRole(str, Enum):
    """User roles."""
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class NotificationType(str, Enum):
    """Notification kinds."""
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_ESCALATED = "ticket_escalated"
    TICKET_CLOSED = "ticket_closed"
    SLA_WARNING = "sla_warning"
    SLA_BREACH = "sla_breach"
    WORKFLOW_NOTIFICATION = "workflow_notification"


class WorkflowTrigger(str, Enum):
    """Lifecycle events workflow rules react to."""
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_RESOLVED = "ticket_resolved"
    SCHEDULED = "scheduled"


class ConditionField(str, Enum):
    """Ticket fields a workflow condition can inspect."""
    CATEGORY = "category"
    PRIORITY = "priority"
    STATUS = "status"
    ASSIGNED_TO = "assignedTo"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    RESOLVED_AT = "resolvedAt"


class ConditionOperator(str, Enum):
    """Workflow condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"


# ========== Groupings ==========

ACTIVE_STATUSES = [TicketStatus.OPEN, TicketStatus.IN_PROGRESS]
COMPLETED_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]
TERMINAL_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED, TicketStatus.CANCELLED]
HIGH_PRIORITIES = [Priority.HIGH, Priority.URGENT]
VALID_PRIORITIES = [Priority.URGENT, Priority.HIGH, Priority.MEDIUM, Priority.LOW]

# Fields compared as "days since" rather than by identity
ELAPSED_DAY_FIELDS = [ConditionField.CREATED_AT, ConditionField.UPDATED_AT, ConditionField.RESOLVED_AT]
