"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Only ``VersionConflictException``,
``ResourceNotFoundException`` and the validation/permission errors are meant to
reach an interactive caller; everything raised inside a scheduled scan is
logged and contained.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class InvalidTransitionException(DomainException):
    """Raised when a ticket status change is not allowed."""

    def __init__(self, ticket_id: str, from_status: str, to_status: str):
        self.ticket_id = ticket_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Ticket {ticket_id} cannot move from {from_status} to {to_status}",
            {"ticket_id": ticket_id, "from_status": from_status, "to_status": to_status}
        )


class PermissionDeniedException(DomainException):
    """Raised when an actor may not modify a ticket."""

    def __init__(self, ticket_id: str, actor_id: Optional[str], role: Optional[str]):
        self.ticket_id = ticket_id
        self.actor_id = actor_id
        self.role = role
        super().__init__(
            f"Actor {actor_id} ({role}) may not modify ticket {ticket_id}",
            {"ticket_id": ticket_id, "actor_id": actor_id, "role": role}
        )


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class VersionConflictException(RepositoryException):
    """Optimistic-lock failure: the stored version moved on since it was read."""

    def __init__(
        self,
        ticket_id: str,
        expected_version: int,
        current_version: Optional[int] = None
    ):
        self.ticket_id = ticket_id
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Ticket {ticket_id} has been modified by another writer "
            f"(expected version {expected_version}, current {current_version})",
            {
                "ticket_id": ticket_id,
                "expected_version": expected_version,
                "current_version": current_version,
            }
        )


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class RuleEvaluationException(ApplicationException):
    """A workflow rule's condition or action failed for a ticket."""

    def __init__(self, rule_name: str, ticket_id: str, cause: Exception):
        self.rule_name = rule_name
        self.ticket_id = ticket_id
        self.cause = cause
        super().__init__(
            f"Workflow rule '{rule_name}' failed for ticket {ticket_id}: {cause}",
            {"rule_name": rule_name, "ticket_id": ticket_id, "error_type": type(cause).__name__}
        )


class ScanIterationException(ApplicationException):
    """Processing of a single ticket inside a scheduled scan failed."""

    def __init__(self, scan: str, ticket_id: str, cause: Exception):
        self.scan = scan
        self.ticket_id = ticket_id
        self.cause = cause
        super().__init__(
            f"{scan} failed for ticket {ticket_id}: {cause}",
            {"scan": scan, "ticket_id": ticket_id, "error_type": type(cause).__name__}
        )


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class NotificationDeliveryException(ExternalServiceException):
    """Exception for notification recording/delivery failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Notifier", message, details)
