"""
SLA Value Objects
==================

Immutable value objects and pure calculations for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Mapping

from supportdesk.config import SLA_HOURS, SLAState, TicketPriority


DEFAULT_RISK_WINDOW = timedelta(hours=4)


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    Nothing here reads the clock or persists anything; callers pass ``now``.
    """

    @staticmethod
    def compute_due_date(
        priority: TicketPriority,
        created_at: datetime,
        sla_hours: Mapping[TicketPriority, int] = SLA_HOURS
    ) -> datetime:
        """
        Calculate the SLA deadline for a ticket.

        Args:
            priority: Ticket priority
            created_at: Start of the SLA clock
            sla_hours: Hours allowed per priority

        Returns:
            ``created_at`` plus the hours allowed for ``priority``
        """
        return created_at + timedelta(hours=sla_hours[TicketPriority(priority)])

    @staticmethod
    def evaluate_status(
        due_at: datetime,
        breached: bool,
        now: datetime,
        risk_window: timedelta = DEFAULT_RISK_WINDOW
    ) -> SLAState:
        """
        Calculate current SLA state.

        Args:
            due_at: The SLA deadline
            breached: Persisted breach flag; once set the ticket stays breached
            now: Current time for evaluation
            risk_window: Remaining time at or below which a ticket is at risk

        Returns:
            SLAState: Current SLA state
        """
        if breached or now >= due_at:
            return SLAState.BREACHED
        if due_at - now <= risk_window:
            return SLAState.AT_RISK
        return SLAState.ON_TRACK


@dataclass(frozen=True)
class SLAPolicy:
    """
    SLA configuration: hours per priority and the at-risk window.

    This is a value object - immutable and defined by its attributes.
    """
    sla_hours: Dict[TicketPriority, int] = field(default_factory=lambda: dict(SLA_HOURS))
    risk_window: timedelta = DEFAULT_RISK_WINDOW

    @classmethod
    def from_settings(cls, settings) -> "SLAPolicy":
        """Build the policy from application settings."""
        return cls(risk_window=timedelta(hours=settings.sla_risk_window_hours))

    def due_date(self, priority: TicketPriority, start: datetime) -> datetime:
        """Deadline for a ticket whose SLA clock starts at ``start``."""
        return SLACalculator.compute_due_date(priority, start, self.sla_hours)

    def status(self, due_at: datetime, breached: bool, now: datetime) -> SLAState:
        """Current SLA state under this policy."""
        return SLACalculator.evaluate_status(due_at, breached, now, self.risk_window)
