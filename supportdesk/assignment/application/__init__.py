"""
Assignment Application Layer
=============================

Capacity bookkeeping, agent administration and DTOs.
"""

from supportdesk.assignment.application.capacity import CapacityTracker
from supportdesk.assignment.application.services import IAgentRepository, AgentService
from supportdesk.assignment.application.dto import (
    AgentCreateRequest,
    AgentUpdateRequest,
    AgentActiveRequest,
    AgentResponse,
    AgentWorkloadResponse,
)

__all__ = [
    "CapacityTracker",
    "IAgentRepository",
    "AgentService",
    "AgentCreateRequest",
    "AgentUpdateRequest",
    "AgentActiveRequest",
    "AgentResponse",
    "AgentWorkloadResponse",
]
