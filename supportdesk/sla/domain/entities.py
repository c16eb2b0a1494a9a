"""
SLA Domain Entities
====================

Pure Python domain objects for SLA monitoring.

Following Domain-Driven Design principles, these objects contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from supportdesk.config import SLAState


@dataclass
class SLASnapshot:
    """
    SLA position of a ticket at one instant.

    Terminal tickets are reported with the state they had when they
    left the active queue; callers decide whether to show them.
    """

    ticket_id: str
    due_at: datetime
    state: SLAState
    remaining_seconds: float
    breached: bool
    evaluated_at: datetime

    @property
    def is_breached(self) -> bool:
        return self.state == SLAState.BREACHED

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "ticket_id": self.ticket_id,
            "due_at": self.due_at.isoformat(),
            "state": self.state.value,
            "remaining_seconds": self.remaining_seconds,
            "breached": self.breached,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass
class SweepResult:
    """Outcome of one pass of the background breach sweep."""

    started_at: datetime
    checked: int = 0
    breached_ticket_ids: List[str] = field(default_factory=list)
    failed_ticket_ids: List[str] = field(default_factory=list)

    @property
    def breached_count(self) -> int:
        return len(self.breached_ticket_ids)
