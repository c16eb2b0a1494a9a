"""
Ticket Controllers (API Routes)
================================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to the intake and lifecycle
services. Domain errors are mapped to HTTP statuses by the exception
handlers registered in ``main``.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from supportdesk.bootstrap import SupportDeskServices
from supportdesk.config import TicketStatus
from supportdesk.lifecycle.application import (
    BulkItemResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    ManualReviewRequest,
    MessageCreateRequest,
    ReassignRequest,
    TicketCreateRequest,
    TicketResponse,
    TicketSummaryResponse,
    TicketUpdateRequest,
)
from supportdesk.lifecycle.domain import Ticket
from supportdesk.shared.api.dependencies import get_services
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_RESPONSE_EXAMPLE = {
    "id": "3f0c8a52-8c1e-4e6b-9d0e-5a1f3b2c7d11",
    "subject": "Charged twice for the season pass",
    "description": "I was charged twice for my purchase this morning, please refund one.",
    "customer_email": "player@example.com",
    "category": "billing",
    "priority": "high",
    "status": "open",
    "assigned_agent_id": "agent-billing-1",
    "sla": {
        "due_at": "2024-01-16T10:00:00Z",
        "state": "on_track",
        "remaining_seconds": 86400.0,
        "breached": False
    },
    "first_response_at": None,
    "resolved_at": None,
    "closed_at": None,
    "closure_reason": None,
    "reopen_count": 0,
    "reopened_at": None,
    "needs_manual_review": False,
    "classification_confidence": 0.8,
    "conversation": [
        {
            "role": "customer",
            "content": "I was charged twice for my purchase this morning, please refund one.",
            "timestamp": "2024-01-15T10:00:00Z"
        },
        {
            "role": "system",
            "content": "Ticket assigned to Dana",
            "timestamp": "2024-01-15T10:00:00Z"
        }
    ],
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z",
    "version": 1
}


# ========== Helpers ==========

def _to_response(services: SupportDeskServices, ticket: Ticket) -> TicketResponse:
    return TicketResponse.from_domain(ticket, services.sla_monitor.snapshot(ticket))


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
    description="""
    Open a support ticket.

    Category and priority are suggested by the classifier unless given.
    The ticket is routed to the least-loaded active agent for its category,
    or left unassigned and flagged for manual review when nobody is free.
    """,
    responses={
        201: {
            "description": "Ticket created",
            "content": {"application/json": {"example": TICKET_RESPONSE_EXAMPLE}}
        }
    }
)
async def create_ticket(
    request: Request,
    payload: TicketCreateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    ticket = await services.intake.open_ticket(
        subject=payload.subject,
        description=payload.description,
        customer_email=payload.customer_email,
        category=payload.category,
        priority=payload.priority
    )
    logger.info(
        "Ticket opened via API",
        extra={"correlation_id": correlation_id, "ticket_id": ticket.id}
    )
    return _to_response(services, ticket)


@router.get(
    "",
    response_model=List[TicketSummaryResponse],
    summary="List tickets"
)
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status", description="Filter by status"),
    agent_id: Optional[str] = Query(None, description="Filter by assigned agent"),
    services: SupportDeskServices = Depends(get_services)
):
    tickets = await services.lifecycle.list_tickets(status=status_filter, agent_id=agent_id)
    return [TicketSummaryResponse.from_domain(t) for t in tickets]


@router.post(
    "/bulk-update",
    response_model=BulkUpdateResponse,
    summary="Apply one update to many tickets",
    description="""
    Each ticket is updated independently; the response reports the outcome
    per ticket and a failure on one does not undo the others.
    """
)
async def bulk_update(
    payload: BulkUpdateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    results = await services.lifecycle.bulk_update(
        payload.ticket_ids,
        status=payload.status,
        priority=payload.priority,
        category=payload.category,
        assigned_agent_id=payload.assigned_agent_id,
        closure_reason=payload.closure_reason,
        actor=payload.actor,
        remark=payload.remark
    )
    succeeded = sum(1 for r in results if r.success)
    return BulkUpdateResponse(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=[
            BulkItemResponse(
                ticket_id=r.ticket_id,
                success=r.success,
                status=r.ticket.status if r.ticket else None,
                error=r.error,
                error_type=r.error_type
            )
            for r in results
        ]
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket with its conversation and SLA position",
    responses={
        200: {"content": {"application/json": {"example": TICKET_RESPONSE_EXAMPLE}}},
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket(
    ticket_id: str,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.get_ticket(ticket_id)
    return _to_response(services, ticket)


@router.post(
    "/{ticket_id}/messages",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a customer or agent message",
    description="""
    - A customer reply on a resolved ticket reopens it.
    - The first agent reply records `first_response_at` and moves an open
      ticket to `in-progress`.
    - Closed tickets reject every message with 409.
    """,
    responses={409: {"description": "Ticket is closed"}}
)
async def add_message(
    ticket_id: str,
    payload: MessageCreateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.add_message(ticket_id, payload.role, payload.content)
    return _to_response(services, ticket)


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Change status, priority, category or assignee",
    responses={
        409: {"description": "Transition not allowed, agent at capacity, or version conflict"},
        422: {"description": "Invalid values or nothing to change"}
    }
)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.update_ticket(
        ticket_id,
        status=payload.status,
        priority=payload.priority,
        category=payload.category,
        assigned_agent_id=payload.assigned_agent_id,
        closure_reason=payload.closure_reason,
        actor=payload.actor,
        remark=payload.remark,
        expected_version=payload.expected_version
    )
    return _to_response(services, ticket)


@router.post(
    "/{ticket_id}/reassign",
    response_model=TicketResponse,
    summary="Move a ticket to another agent",
    responses={409: {"description": "Target agent full or inactive, or version conflict"}}
)
async def reassign_ticket(
    ticket_id: str,
    payload: ReassignRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.reassign(
        ticket_id,
        payload.agent_id,
        expected_version=payload.expected_version,
        actor=payload.actor,
        remark=payload.remark
    )
    return _to_response(services, ticket)


@router.post(
    "/{ticket_id}/manual-review",
    response_model=TicketResponse,
    summary="Flag a ticket for manual review"
)
async def flag_manual_review(
    ticket_id: str,
    payload: ManualReviewRequest,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.flag_manual_review(ticket_id, payload.reason)
    return _to_response(services, ticket)


@router.delete(
    "/{ticket_id}/manual-review",
    response_model=TicketResponse,
    summary="Clear the manual review flag"
)
async def clear_manual_review(
    ticket_id: str,
    agent_id: Optional[str] = Query(None, description="Reviewing agent, named in the system note"),
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.clear_manual_review(ticket_id, agent_id=agent_id)
    return _to_response(services, ticket)


# Export router for inclusion in main app
tickets_router = router
