"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Every rejection raised by the
lifecycle engine is one of these types and is raised before anything is
committed.
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


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


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


class TicketNotFoundException(ResourceNotFoundException):
    """Ticket lookup failed."""

    def __init__(self, ticket_id: str):
        super().__init__("Ticket", ticket_id, {"ticket_id": ticket_id})


class AgentNotFoundException(ResourceNotFoundException):
    """Agent lookup failed."""

    def __init__(self, agent_id: str):
        super().__init__("Agent", agent_id, {"agent_id": agent_id})


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


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


class ClassifierUnavailableException(ExternalServiceException):
    """The ticket classifier could not produce a suggestion."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Classifier", message, details)


class ConcurrencyConflictException(RepositoryException):
    """A save was attempted against a stale revision of a document."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' was modified concurrently",
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            }
        )


class NoEligibleAgentException(DomainException):
    """No active agent with spare capacity exists."""

    def __init__(self, category: Optional[str] = None):
        self.category = category
        super().__init__(
            "No active agent with spare capacity",
            {"category": category}
        )


class CapacityExceededException(DomainException):
    """The agent is already at its maximum load."""

    def __init__(self, agent_id: str, current_load: int, max_load: int):
        self.agent_id = agent_id
        self.current_load = current_load
        self.max_load = max_load
        super().__init__(
            f"Agent {agent_id} is at capacity ({current_load}/{max_load})",
            {"agent_id": agent_id, "current_load": current_load, "max_load": max_load}
        )


class AgentInactiveException(DomainException):
    """The agent is deactivated and cannot take tickets."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} is inactive", {"agent_id": agent_id})


class InvalidStatusTransitionException(DomainException):
    """The requested status change is not an allowed edge."""

    def __init__(
        self,
        ticket_id: str,
        from_status: str,
        to_status: str,
        reason: Optional[str] = None
    ):
        self.ticket_id = ticket_id
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot move ticket {ticket_id} from {from_status} to {to_status}"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            {"ticket_id": ticket_id, "from_status": from_status, "to_status": to_status}
        )


class TicketClosedException(DomainException):
    """Closed tickets accept no further writes."""

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} is closed", {"ticket_id": ticket_id})
