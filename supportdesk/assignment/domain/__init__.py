"""
Assignment Domain Layer
=======================

Domain layer for agent routing.

Contains:
- Entities: Agent, AgentWorkload
- Domain Services: AgentSelector (category- and capacity-aware routing)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supportdesk.assignment.domain.entities import Agent, AgentWorkload
from supportdesk.assignment.domain.services import AgentSelector

__all__ = [
    "Agent",
    "AgentWorkload",
    "AgentSelector",
]
