"""
Lifecycle Application DTOs
===========================

Data Transfer Objects for the ticket API layer.

Pydantic models for request/response validation. Enum fields accept
their string values and reject anything else with a 422.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from supportdesk.config import (
    MessageRole,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    UpdateActor,
)
from supportdesk.lifecycle.domain import Message, Ticket
from supportdesk.sla.application import SLAStatusResponse
from supportdesk.sla.domain import SLASnapshot


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """
    Request model for opening a ticket.

    Category and priority are optional; when omitted the classifier
    suggests them.
    """
    subject: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1, description="Becomes the first customer message")
    customer_email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    category: Optional[TicketCategory] = Field(None, description="Overrides the classifier")
    priority: Optional[TicketPriority] = Field(None, description="Overrides the classifier")

    @field_validator("subject", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class MessageCreateRequest(BaseModel):
    """Request model for adding a message to a ticket."""
    role: MessageRole = Field(..., description="customer or agent")
    content: str = Field(..., min_length=1, max_length=20000)

    @field_validator("role")
    @classmethod
    def no_system_messages(cls, v: MessageRole) -> MessageRole:
        if v == MessageRole.SYSTEM:
            raise ValueError("system messages are written by the service only")
        return v


class TicketUpdateRequest(BaseModel):
    """Request model for a status/priority/category/assignee change."""
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    category: Optional[TicketCategory] = None
    assigned_agent_id: Optional[str] = None
    closure_reason: Optional[str] = Field(None, max_length=1000)
    actor: UpdateActor = UpdateActor.AGENT
    remark: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = Field(None, ge=0, description="Reject if the ticket has changed since")

    @model_validator(mode="after")
    def closure_reason_for_close(self) -> "TicketUpdateRequest":
        if self.status == TicketStatus.CLOSED and not (self.closure_reason or "").strip():
            raise ValueError("closure_reason is required when closing a ticket")
        return self


class ReassignRequest(BaseModel):
    """Request model for moving a ticket to another agent."""
    agent_id: str = Field(..., min_length=1)
    actor: UpdateActor = UpdateActor.ADMIN
    remark: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = Field(None, ge=0)


class BulkUpdateRequest(BaseModel):
    """Request model for applying one update to several tickets."""
    ticket_ids: List[str] = Field(..., min_length=1, max_length=500)
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    category: Optional[TicketCategory] = None
    assigned_agent_id: Optional[str] = None
    closure_reason: Optional[str] = None
    actor: UpdateActor = UpdateActor.ADMIN
    remark: Optional[str] = None


class ManualReviewRequest(BaseModel):
    """Request model for flagging a ticket for review."""
    reason: str = Field(..., min_length=1, max_length=1000)


# ========== Response DTOs ==========

class MessageResponse(BaseModel):
    """A conversation entry."""
    role: MessageRole
    content: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, message: Message) -> "MessageResponse":
        return cls(role=message.role, content=message.content, timestamp=message.timestamp)


class TicketResponse(BaseModel):
    """Response model for a single ticket."""
    id: str
    subject: str
    description: str
    customer_email: str
    category: TicketCategory
    priority: TicketPriority
    status: TicketStatus
    assigned_agent_id: Optional[str] = None
    sla: SLAStatusResponse
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closure_reason: Optional[str] = None
    reopen_count: int
    reopened_at: Optional[datetime] = None
    needs_manual_review: bool
    classification_confidence: Optional[float] = None
    conversation: List[MessageResponse]
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int

    @classmethod
    def from_domain(cls, ticket: Ticket, sla: SLASnapshot) -> "TicketResponse":
        """Create from domain entity and its current SLA position."""
        return cls(
            id=ticket.id,
            subject=ticket.subject,
            description=ticket.description,
            customer_email=ticket.customer_email,
            category=ticket.category,
            priority=ticket.priority,
            status=ticket.status,
            assigned_agent_id=ticket.assigned_agent_id,
            sla=SLAStatusResponse.from_snapshot(sla),
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            closure_reason=ticket.closure_reason,
            reopen_count=ticket.reopen_count,
            reopened_at=ticket.reopened_at,
            needs_manual_review=ticket.needs_manual_review,
            classification_confidence=ticket.classification_confidence,
            conversation=[MessageResponse.from_domain(m) for m in ticket.conversation],
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            version=ticket.version
        )


class TicketSummaryResponse(BaseModel):
    """Compact ticket listing entry."""
    id: str
    subject: str
    category: TicketCategory
    priority: TicketPriority
    status: TicketStatus
    assigned_agent_id: Optional[str] = None
    sla_due_at: datetime
    sla_breached: bool
    needs_manual_review: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketSummaryResponse":
        return cls(
            id=ticket.id,
            subject=ticket.subject,
            category=ticket.category,
            priority=ticket.priority,
            status=ticket.status,
            assigned_agent_id=ticket.assigned_agent_id,
            sla_due_at=ticket.sla_due_at,
            sla_breached=ticket.sla_breached,
            needs_manual_review=ticket.needs_manual_review,
            created_at=ticket.created_at
        )


class BulkItemResponse(BaseModel):
    """Outcome of one ticket in a bulk update."""
    ticket_id: str
    success: bool
    status: Optional[TicketStatus] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BulkUpdateResponse(BaseModel):
    """Response model for a bulk update."""
    total: int
    succeeded: int
    failed: int
    results: List[BulkItemResponse]


class AgentStatusChangeResponse(BaseModel):
    """Response model for activating or deactivating an agent."""
    agent_id: str
    is_active: bool
    current_load: int
    reassigned: List[str] = Field(default_factory=list)
    unassigned: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
