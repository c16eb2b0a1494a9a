"""
Assignment Application DTOs
============================

Data Transfer Objects for the agent API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from supportdesk.assignment.domain import Agent
from supportdesk.config import TicketCategory


# ========== Request DTOs ==========

class AgentCreateRequest(BaseModel):
    """Request model for registering an agent."""
    id: Optional[str] = Field(None, description="Agent ID (generated when omitted)")
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    categories: List[TicketCategory] = Field(default_factory=list, description="Categories the agent handles")
    max_load: Optional[int] = Field(None, gt=0, description="Maximum concurrent open tickets")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class AgentUpdateRequest(BaseModel):
    """Request model for changing an agent's profile."""
    categories: Optional[List[TicketCategory]] = None
    max_load: Optional[int] = Field(None, gt=0)


class AgentActiveRequest(BaseModel):
    """Request model for activating or deactivating an agent."""
    is_active: bool


# ========== Response DTOs ==========

class AgentResponse(BaseModel):
    """Response model for a single agent."""
    id: str
    name: str
    email: str
    categories: List[TicketCategory]
    is_active: bool
    current_load: int
    max_load: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, agent: Agent) -> "AgentResponse":
        """Create from domain entity."""
        return cls(
            id=agent.id,
            name=agent.name,
            email=agent.email,
            categories=sorted(agent.categories, key=lambda c: c.value),
            is_active=agent.is_active,
            current_load=agent.current_load,
            max_load=agent.max_load,
            created_at=agent.created_at,
            updated_at=agent.updated_at
        )


class AgentWorkloadResponse(BaseModel):
    """Per-agent load with the recounted number of open tickets."""
    agent_id: str
    name: str
    is_active: bool
    current_load: int
    max_load: int
    open_tickets: int = Field(..., description="Non-terminal tickets assigned right now")
    consistent: bool = Field(..., description="current_load matches open_tickets")
