"""
Agent Controllers (API Routes)
===============================

FastAPI routes for agent administration and workload reporting.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from supportdesk.assignment.application import (
    AgentActiveRequest,
    AgentCreateRequest,
    AgentResponse,
    AgentUpdateRequest,
    AgentWorkloadResponse,
)
from supportdesk.bootstrap import SupportDeskServices
from supportdesk.lifecycle.application import AgentStatusChangeResponse
from supportdesk.shared.api.dependencies import get_services
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/agents", tags=["Agents"])


# ========== Example payloads for Swagger ==========

AGENT_RESPONSE_EXAMPLE = {
    "id": "agent-billing-1",
    "name": "Dana",
    "email": "dana@support.example.com",
    "categories": ["billing", "account"],
    "is_active": True,
    "current_load": 3,
    "max_load": 10,
    "created_at": "2024-01-15T09:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z"
}

WORKLOAD_RESPONSE_EXAMPLE = [
    {
        "agent_id": "agent-billing-1",
        "name": "Dana",
        "is_active": True,
        "current_load": 3,
        "max_load": 10,
        "open_tickets": 3,
        "consistent": True
    }
]


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=AgentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an agent",
    responses={201: {"content": {"application/json": {"example": AGENT_RESPONSE_EXAMPLE}}}}
)
async def register_agent(
    payload: AgentCreateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    agent = await services.agents.register_agent(
        name=payload.name,
        email=payload.email,
        categories=payload.categories,
        max_load=payload.max_load,
        agent_id=payload.id
    )
    return AgentResponse.from_domain(agent)


@router.get(
    "",
    response_model=List[AgentResponse],
    summary="List agents"
)
async def list_agents(services: SupportDeskServices = Depends(get_services)):
    agents = await services.agents.list_agents()
    return [AgentResponse.from_domain(a) for a in agents]


@router.get(
    "/workloads",
    response_model=List[AgentWorkloadResponse],
    summary="Agent load next to a recount of open tickets",
    description="""
    `current_load` is the stored counter; `open_tickets` is recounted from
    the tickets. `consistent` is false when the two disagree.
    """,
    responses={200: {"content": {"application/json": {"example": WORKLOAD_RESPONSE_EXAMPLE}}}}
)
async def agent_workloads(services: SupportDeskServices = Depends(get_services)):
    workloads = await services.lifecycle.agent_workloads()
    return [
        AgentWorkloadResponse(
            agent_id=w.agent_id,
            name=w.name,
            is_active=w.is_active,
            current_load=w.current_load,
            max_load=w.max_load,
            open_tickets=w.open_tickets,
            consistent=w.consistent
        )
        for w in workloads
    ]


@router.get(
    "/{agent_id}",
    response_model=AgentResponse,
    summary="Get an agent",
    responses={404: {"description": "Agent not found"}}
)
async def get_agent(
    agent_id: str,
    services: SupportDeskServices = Depends(get_services)
):
    agent = await services.agents.get_agent(agent_id)
    return AgentResponse.from_domain(agent)


@router.patch(
    "/{agent_id}",
    response_model=AgentResponse,
    summary="Change an agent's categories or capacity"
)
async def update_agent(
    agent_id: str,
    payload: AgentUpdateRequest,
    services: SupportDeskServices = Depends(get_services)
):
    agent = await services.agents.update_profile(
        agent_id,
        categories=payload.categories,
        max_load=payload.max_load
    )
    return AgentResponse.from_domain(agent)


@router.put(
    "/{agent_id}/active",
    response_model=AgentStatusChangeResponse,
    summary="Activate or deactivate an agent",
    description="""
    Deactivating an agent moves each of its open tickets to another eligible
    agent, or leaves it unassigned and flagged for manual review.
    """
)
async def set_agent_active(
    agent_id: str,
    payload: AgentActiveRequest,
    services: SupportDeskServices = Depends(get_services)
):
    change = await services.lifecycle.set_agent_active(agent_id, payload.is_active)
    logger.info(
        "Agent activity changed via API",
        extra={
            "agent_id": agent_id,
            "is_active": payload.is_active,
            "reassigned": len(change.reassigned),
            "unassigned": len(change.unassigned)
        }
    )
    return AgentStatusChangeResponse(
        agent_id=change.agent.id,
        is_active=change.agent.is_active,
        current_load=change.agent.current_load,
        reassigned=change.reassigned,
        unassigned=change.unassigned,
        failed=change.failed
    )


# Export router for inclusion in main app
agents_router = router
