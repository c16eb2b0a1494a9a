"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA monitoring endpoints.

Controllers are thin - they delegate to application services.
"""

import time

from fastapi import APIRouter, Depends, Request

from supportdesk.bootstrap import SupportDeskServices
from supportdesk.shared.api.dependencies import get_services
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.sla.application import SLAStatusResponse, SweepResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

SLA_STATUS_EXAMPLE = {
    "due_at": "2024-01-15T18:00:00Z",
    "state": "at_risk",
    "remaining_seconds": 5400.0,
    "breached": False
}

SWEEP_RESPONSE_EXAMPLE = {
    "started_at": "2024-01-15T18:05:00Z",
    "checked": 2,
    "breached_ticket_ids": ["3f0c8a52-8c1e-4e6b-9d0e-5a1f3b2c7d11"],
    "failed_ticket_ids": []
}


# ========== Route Handlers ==========

@router.get(
    "/tickets/{ticket_id}",
    response_model=SLAStatusResponse,
    summary="Get the SLA position of a ticket",
    description="""
    **SLA windows** (from creation, or from the last priority change):

    | Priority | Hours |
    |----------|-------|
    | urgent   | 8     |
    | high     | 24    |
    | medium   | 48    |
    | low      | 72    |

    A ticket is `at_risk` inside the configured window before its deadline
    and `breached` once the deadline has passed. Reading an overdue ticket
    records the breach.
    """,
    responses={
        200: {"content": {"application/json": {"example": SLA_STATUS_EXAMPLE}}},
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket_sla(
    ticket_id: str,
    services: SupportDeskServices = Depends(get_services)
):
    ticket = await services.lifecycle.get_ticket(ticket_id)
    return SLAStatusResponse.from_snapshot(services.sla_monitor.snapshot(ticket))


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run the breach sweep now",
    description="Flags every overdue open or in-progress ticket. Safe to run alongside the scheduled sweep.",
    responses={200: {"content": {"application/json": {"example": SWEEP_RESPONSE_EXAMPLE}}}}
)
async def run_sweep(
    request: Request,
    services: SupportDeskServices = Depends(get_services)
):
    start_time = time.perf_counter()
    result = await services.sla_monitor.sweep()
    logger.info(
        "Manual SLA sweep finished",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "checked": result.checked,
            "breached": result.breached_count,
            "processing_time_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )
    return SweepResponse.from_result(result)


# Export router for inclusion in main app
sla_router = router
