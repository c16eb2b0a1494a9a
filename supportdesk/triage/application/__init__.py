"""
Triage Application Layer
=========================

Application layer for ticket triage module.

Contains:
- Services: Ticket intake with classification, AI update gateway
- DTOs: Data transfer objects for API serialization
"""

from supportdesk.triage.application.services import (
    AIUpdateGateway,
    ITicketClassifier,
    TicketIntakeService,
)
from supportdesk.triage.application.dto import (
    ClassifyRequest,
    ClassificationResponse,
    ProposedUpdateRequest,
    RejectProposalRequest,
)

__all__ = [
    # Services
    "TicketIntakeService",
    "AIUpdateGateway",
    # Ports
    "ITicketClassifier",
    # DTOs
    "ClassifyRequest",
    "ClassificationResponse",
    "ProposedUpdateRequest",
    "RejectProposalRequest",
]
