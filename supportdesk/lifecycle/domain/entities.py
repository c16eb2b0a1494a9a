"""
Lifecycle Domain Entities
=========================

Pure Python domain entities for the ticket lifecycle.

Entities have identity and lifecycle. They contain business logic
related to their state but no persistence concerns.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from supportdesk.config import (
    MessageRole,
    TicketCategory,
    TicketEventType,
    TicketPriority,
    TicketStatus,
)


@dataclass(frozen=True)
class Message:
    """
    One entry of a ticket conversation.

    Messages are immutable once appended.
    """
    role: MessageRole
    content: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Ticket:
    """
    Support ticket aggregate root.

    Owns its conversation. ``version`` is the optimistic-concurrency
    revision and is bumped by the repository on every successful save.
    """

    id: str
    subject: str
    description: str
    customer_email: str
    category: TicketCategory
    priority: TicketPriority
    sla_due_at: datetime
    status: TicketStatus = TicketStatus.OPEN
    assigned_agent_id: Optional[str] = None

    # SLA
    sla_breached: bool = False

    # Lifecycle timestamps
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closure_reason: Optional[str] = None
    reopen_count: int = 0
    reopened_at: Optional[datetime] = None

    # Triage
    needs_manual_review: bool = False
    classification_confidence: Optional[float] = None

    conversation: List[Message] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def open_new(
        cls,
        subject: str,
        description: str,
        customer_email: str,
        category: TicketCategory,
        priority: TicketPriority,
        sla_due_at: datetime,
        created_at: datetime,
        ticket_id: Optional[str] = None
    ) -> "Ticket":
        """Create a fresh open ticket with an empty conversation."""
        return cls(
            id=ticket_id or str(uuid4()),
            subject=subject,
            description=description,
            customer_email=customer_email,
            category=category,
            priority=priority,
            sla_due_at=sla_due_at,
            created_at=created_at,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def holds_capacity(self) -> bool:
        """Whether this ticket counts against its assignee's load."""
        return self.assigned_agent_id is not None and not self.is_terminal

    def is_overdue(self, now: datetime) -> bool:
        """Non-terminal, not yet flagged, and past its deadline."""
        return not self.is_terminal and not self.sla_breached and now >= self.sla_due_at

    def copy(self) -> "Ticket":
        """Working copy; the conversation list is duplicated, messages are shared."""
        return dataclasses.replace(self, conversation=list(self.conversation))


@dataclass(frozen=True)
class TicketEvent:
    """Something that happened to a ticket, published after commit."""
    event_type: TicketEventType
    ticket_id: str
    occurred_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "ticket_id": self.ticket_id,
            "occurred_at": self.occurred_at.isoformat(),
            "data": self.payload,
        }
