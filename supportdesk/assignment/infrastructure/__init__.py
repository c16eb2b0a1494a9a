"""
Assignment Infrastructure Layer
===============================

Agent persistence (SQLAlchemy and in-memory).
"""

from supportdesk.assignment.infrastructure.repositories import (
    InMemoryAgentRepository,
    SQLAlchemyAgentRepository,
)

__all__ = [
    "InMemoryAgentRepository",
    "SQLAlchemyAgentRepository",
]
