"""
Ticket State Machine
====================

Status transitions of a ticket.

    open <-> in-progress
    open, in-progress -> resolved
    open, in-progress, resolved -> closed
    resolved -> open            (customer reply only)

Every method mutates the ticket it is given; callers pass a working copy
and persist it only if the whole operation succeeds.
"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from supportdesk.config import TicketStatus, coerce_enum
from supportdesk.core import (
    InvalidStatusTransitionException,
    TicketClosedException,
    ValidationException,
)
from supportdesk.lifecycle.domain.entities import Ticket


ALLOWED_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED}),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
    TicketStatus.CLOSED: frozenset(),
}


class TicketStateMachine:
    """Applies lifecycle rules to a ticket."""

    @staticmethod
    def can_transition(from_status: TicketStatus, to_status: TicketStatus) -> bool:
        return to_status in ALLOWED_TRANSITIONS[from_status]

    @staticmethod
    def on_customer_message(ticket: Ticket, now: datetime) -> bool:
        """
        React to a customer reply.

        Returns:
            True if the reply reopened a resolved ticket

        Raises:
            TicketClosedException: The ticket is closed
        """
        if ticket.status == TicketStatus.CLOSED:
            raise TicketClosedException(ticket.id)

        if ticket.status == TicketStatus.RESOLVED:
            ticket.status = TicketStatus.OPEN
            ticket.reopen_count += 1
            ticket.reopened_at = now
            ticket.updated_at = now
            return True
        return False

    @staticmethod
    def on_agent_message(ticket: Ticket, now: datetime) -> Optional[TicketStatus]:
        """
        React to an agent reply.

        Records the first response once and starts work on open tickets.

        Returns:
            The previous status if the reply changed it, else None

        Raises:
            TicketClosedException: The ticket is closed
        """
        if ticket.status == TicketStatus.CLOSED:
            raise TicketClosedException(ticket.id)

        if ticket.first_response_at is None:
            ticket.first_response_at = now
        ticket.updated_at = now

        if ticket.status == TicketStatus.OPEN:
            ticket.status = TicketStatus.IN_PROGRESS
            return TicketStatus.OPEN
        return None

    @classmethod
    def transition(
        cls,
        ticket: Ticket,
        target,
        now: datetime,
        closure_reason: Optional[str] = None
    ) -> TicketStatus:
        """
        Apply an explicit status change.

        Args:
            ticket: Ticket to change
            target: Requested status (enum member or raw value)
            now: Time of the change
            closure_reason: Required when closing

        Returns:
            The status the ticket had before

        Raises:
            ValidationException: Unknown status, or closing without a reason
            InvalidStatusTransitionException: Not an allowed edge
        """
        target = coerce_enum(TicketStatus, target, "status")
        current = ticket.status

        if target == current:
            raise InvalidStatusTransitionException(
                ticket.id, current.value, target.value, "ticket already has this status"
            )
        if not cls.can_transition(current, target):
            reason = None
            if current == TicketStatus.CLOSED:
                reason = "closed tickets cannot change status"
            elif current == TicketStatus.RESOLVED and target == TicketStatus.OPEN:
                reason = "resolved tickets reopen only on a customer reply"
            raise InvalidStatusTransitionException(ticket.id, current.value, target.value, reason)

        if target == TicketStatus.CLOSED:
            reason_text = (closure_reason or "").strip()
            if not reason_text:
                raise ValidationException(
                    "closure_reason is required when closing a ticket",
                    {"ticket_id": ticket.id}
                )
            ticket.closed_at = now
            ticket.closure_reason = reason_text
        elif target == TicketStatus.RESOLVED:
            ticket.resolved_at = now

        ticket.status = target
        ticket.updated_at = now
        return current
