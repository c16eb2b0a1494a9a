"""
Triage Controllers (API Routes)
================================

FastAPI routes for classification previews and AI-proposed updates.

Controllers are thin - they delegate to application services.
"""

import time

from fastapi import APIRouter, Depends, Request

from supportdesk.bootstrap import SupportDeskServices
from supportdesk.lifecycle.application import TicketResponse
from supportdesk.shared.api.dependencies import get_services
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.triage.application import (
    ClassificationResponse,
    ClassifyRequest,
    ProposedUpdateRequest,
    RejectProposalRequest,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["AI Triage"])


# ========== Example payloads for Swagger ==========

CLASSIFY_RESPONSE_EXAMPLE = {
    "available": True,
    "category": "security",
    "priority": "urgent",
    "confidence": 0.8,
    "reasoning": "2 keyword match(es) for security",
    "needs_manual_review": False
}


# ========== Route Handlers ==========

@router.post(
    "/classify",
    response_model=ClassificationResponse,
    summary="Preview the classification of a ticket",
    description="""
    Run the configured classifier without creating a ticket.

    **Categories**: `account`, `billing`, `technical`, `gameplay`, `security`, `general`

    **Priorities**: `urgent`, `high`, `medium`, `low`

    When the classifier is unavailable or times out, `available` is false
    and the defaults a new ticket would get are returned.
    """,
    responses={200: {"content": {"application/json": {"example": CLASSIFY_RESPONSE_EXAMPLE}}}}
)
async def classify_ticket(
    request: Request,
    payload: ClassifyRequest,
    services: SupportDeskServices = Depends(get_services)
):
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    result = await services.intake.classify(payload.subject, payload.description)
    response = ClassificationResponse.from_result(
        result, services.settings.classification_confidence_threshold
    )

    logger.info(
        "Ticket classified",
        extra={
            "correlation_id": correlation_id,
            "available": response.available,
            "category": response.category.value,
            "priority": response.priority.value,
            "confidence": response.confidence,
            "processing_time_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )
    return response


@router.post(
    "/tickets/{ticket_id}/proposals",
    response_model=TicketResponse,
    summary="Apply an AI-proposed ticket update",
    description="""
    Applies the proposal through the same guarded update path as human
    edits. Unchanged fields are ignored; a proposal that changes nothing
    is rejected with 422.
    """,
    responses={
        409: {"description": "Transition not allowed or ticket changed meanwhile"},
        422: {"description": "Unknown values or nothing to change"}
    }
)
async def apply_proposal(
    ticket_id: str,
    payload: ProposedUpdateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.ai_gateway.apply(ticket_id, payload.to_domain())
    return TicketResponse.from_domain(ticket, services.sla_monitor.snapshot(ticket))


@router.post(
    "/tickets/{ticket_id}/proposals/reject",
    response_model=TicketResponse,
    summary="Reject an AI-proposed ticket update",
    description="Records the rejection and flags the ticket for manual review."
)
async def reject_proposal(
    ticket_id: str,
    payload: RejectProposalRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.ai_gateway.reject(ticket_id, payload.reason)
    return TicketResponse.from_domain(ticket, services.sla_monitor.snapshot(ticket))


# Export router for inclusion in main app
triage_router = router
