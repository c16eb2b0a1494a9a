"""
SLA Application Services
=========================

Application services orchestrate SLA evaluation over stored tickets.

Breach detection runs two ways: lazily when a ticket is read, and in a
periodic sweep. Both paths persist the false -> true flip of
``sla_breached`` through the same idempotent ``record_sla_breach`` call
owned by the lifecycle context, so the sweep never writes a ticket behind
the per-ticket lock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from supportdesk.config import SLAState
from supportdesk.sla.domain import SLAPolicy, SLASnapshot, SweepResult
from supportdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Ports (Dependency Inversion) ==========

class IBreachRecorder(ABC):
    """Access to tickets for breach evaluation."""

    @abstractmethod
    async def list_breach_candidates(self, now: datetime) -> List[Any]:
        """Non-terminal, not yet breached tickets whose deadline has passed."""

    @abstractmethod
    async def record_sla_breach(self, ticket_id: str, now: Optional[datetime] = None) -> bool:
        """
        Persist the breach flag for one ticket.

        Returns True only when this call flipped the flag; re-recording an
        already-breached or terminal ticket is a no-op returning False.
        """


# ========== Application Services ==========

class SLAMonitorService:
    """
    Service for evaluating SLA compliance across tickets.

    Run periodically to flag breached tickets.
    """

    def __init__(
        self,
        recorder: IBreachRecorder,
        policy: Optional[SLAPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._recorder = recorder
        self._policy = policy or SLAPolicy()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def policy(self) -> SLAPolicy:
        return self._policy

    def snapshot(self, ticket: Any, now: Optional[datetime] = None) -> SLASnapshot:
        """
        Calculate the SLA position of a ticket without touching storage.

        Args:
            ticket: Any object exposing ``id``, ``status``, ``sla_due_at``,
                ``sla_breached``, ``resolved_at`` and ``closed_at``
            now: Evaluation time (defaults to the service clock)

        Resolved and closed tickets are scored at the moment they left the
        active queue, and only the persisted flag makes them breached.
        """
        now = now or self._clock()
        if ticket.status.is_terminal:
            at = min(ticket.resolved_at or ticket.closed_at or now, now)
            state = self._policy.status(ticket.sla_due_at, ticket.sla_breached, at)
            if state == SLAState.BREACHED and not ticket.sla_breached:
                state = SLAState.AT_RISK
        else:
            at = now
            state = self._policy.status(ticket.sla_due_at, ticket.sla_breached, now)
        remaining = (ticket.sla_due_at - at).total_seconds()
        return SLASnapshot(
            ticket_id=ticket.id,
            due_at=ticket.sla_due_at,
            state=state,
            remaining_seconds=max(0.0, remaining),
            breached=ticket.sla_breached,
            evaluated_at=now
        )

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Flag every overdue non-terminal ticket as breached.

        Safe to run concurrently with request handling and with itself:
        each flip goes through the per-ticket lock and is idempotent.
        """
        now = now or self._clock()
        result = SweepResult(started_at=now)

        with log_latency(logger, "sla_sweep"):
            candidates = await self._recorder.list_breach_candidates(now)
            result.checked = len(candidates)

            for ticket in candidates:
                ticket_id = ticket.id
                try:
                    if await self._recorder.record_sla_breach(ticket_id, now):
                        result.breached_ticket_ids.append(ticket_id)
                except Exception as e:
                    # One bad ticket must not stop the sweep
                    result.failed_ticket_ids.append(ticket_id)
                    logger.error(
                        "SLA breach recording failed",
                        extra={"ticket_id": ticket_id, "error": str(e)}
                    )

        if result.breached_count:
            logger.warning(
                "SLA sweep flagged breached tickets",
                extra={
                    "breached_count": result.breached_count,
                    "checked": result.checked
                }
            )

        return result
