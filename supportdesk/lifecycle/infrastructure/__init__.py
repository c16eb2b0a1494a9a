"""
Lifecycle Infrastructure Layer
==============================

Ticket persistence (SQLAlchemy and in-memory) and event notifiers.
"""

from supportdesk.lifecycle.infrastructure.repositories import (
    InMemoryTicketRepository,
    SQLAlchemyTicketRepository,
)
from supportdesk.lifecycle.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    LoggingNotifier,
    WebhookNotifier,
)

__all__ = [
    "InMemoryTicketRepository",
    "SQLAlchemyTicketRepository",
    "CircuitBreaker",
    "CircuitState",
    "LoggingNotifier",
    "WebhookNotifier",
]
