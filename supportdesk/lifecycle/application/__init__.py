"""
Lifecycle Application Layer
============================

Application layer for the ticket lifecycle.

Contains:
- Services: TicketLifecycleService, the single entry point for ticket mutations
- Events: notifier port and background dispatcher
- DTOs: Data transfer objects for API serialization
"""

from supportdesk.lifecycle.application.events import EventDispatcher, ITicketNotifier
from supportdesk.lifecycle.application.services import (
    AgentStatusChange,
    BulkItemResult,
    ITicketRepository,
    TicketLifecycleService,
)
from supportdesk.lifecycle.application.dto import (
    TicketCreateRequest,
    MessageCreateRequest,
    TicketUpdateRequest,
    ReassignRequest,
    BulkUpdateRequest,
    ManualReviewRequest,
    MessageResponse,
    TicketResponse,
    TicketSummaryResponse,
    BulkItemResponse,
    BulkUpdateResponse,
    AgentStatusChangeResponse,
)

__all__ = [
    # Services
    "TicketLifecycleService",
    "AgentStatusChange",
    "BulkItemResult",
    # Ports
    "ITicketRepository",
    "ITicketNotifier",
    "EventDispatcher",
    # DTOs
    "TicketCreateRequest",
    "MessageCreateRequest",
    "TicketUpdateRequest",
    "ReassignRequest",
    "BulkUpdateRequest",
    "ManualReviewRequest",
    "MessageResponse",
    "TicketResponse",
    "TicketSummaryResponse",
    "BulkItemResponse",
    "BulkUpdateResponse",
    "AgentStatusChangeResponse",
]
