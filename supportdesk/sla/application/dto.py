"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from supportdesk.config import SLAState
from supportdesk.sla.domain import SLASnapshot, SweepResult


class SLAStatusResponse(BaseModel):
    """Response model for the SLA position of a ticket."""
    due_at: datetime = Field(..., description="SLA deadline")
    state: SLAState = Field(..., description="Current SLA state")
    remaining_seconds: float = Field(..., description="Time remaining (0 once overdue)")
    breached: bool = Field(..., description="Persisted breach flag")

    @classmethod
    def from_snapshot(cls, snapshot: SLASnapshot) -> "SLAStatusResponse":
        return cls(
            due_at=snapshot.due_at,
            state=snapshot.state,
            remaining_seconds=snapshot.remaining_seconds,
            breached=snapshot.breached
        )


class SweepResponse(BaseModel):
    """Response model for a manually triggered breach sweep."""
    started_at: datetime
    checked: int
    breached_ticket_ids: List[str] = Field(default_factory=list)
    failed_ticket_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls(
            started_at=result.started_at,
            checked=result.checked,
            breached_ticket_ids=result.breached_ticket_ids,
            failed_ticket_ids=result.failed_ticket_ids
        )
