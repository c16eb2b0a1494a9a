"""
Triage Application Services
============================

Application services for ticket intake and AI-proposed updates.

Classification happens before the lifecycle takes any lock, under a
timeout; a slow or broken classifier degrades to the default category
with the ticket flagged for manual review instead of blocking creation.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from supportdesk.config import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    UpdateActor,
    coerce_enum,
)
from supportdesk.core import ClassifierUnavailableException, ValidationException
from supportdesk.lifecycle.application import TicketLifecycleService
from supportdesk.lifecycle.domain import Ticket
from supportdesk.shared.infrastructure.logging import get_logger, log_latency
from supportdesk.triage.domain import ClassificationResult, ProposedTicketUpdate

logger = get_logger(__name__)


# ========== Ports ==========

class ITicketClassifier(ABC):
    """Interface for text classification."""

    @abstractmethod
    async def classify(self, subject: str, description: str) -> ClassificationResult:
        """
        Suggest a category and priority for a ticket.

        Raises:
            ClassifierUnavailableException: The classifier cannot answer
        """


# ========== Application Services ==========

class TicketIntakeService:
    """
    Opens tickets from customer submissions.

    Coordinates the classifier with the lifecycle service. Caller-supplied
    category and priority always win over the classifier's suggestion.
    """

    def __init__(
        self,
        lifecycle: TicketLifecycleService,
        classifier: ITicketClassifier,
        timeout_seconds: float = 3.0,
        confidence_threshold: float = 0.6
    ):
        self._lifecycle = lifecycle
        self._classifier = classifier
        self._timeout = timeout_seconds
        self._threshold = confidence_threshold

    async def classify(self, subject: str, description: str) -> Optional[ClassificationResult]:
        """
        Ask the classifier, giving up after the configured timeout.

        Returns:
            The suggestion, or None if the classifier was unavailable
        """
        try:
            with log_latency(logger, "classification"):
                return await asyncio.wait_for(
                    self._classifier.classify(subject, description),
                    timeout=self._timeout
                )
        except asyncio.TimeoutError:
            logger.warning("Classifier timed out", extra={"timeout_seconds": self._timeout})
        except ClassifierUnavailableException as e:
            logger.warning("Classifier unavailable", extra={"error": e.message})
        return None

    async def open_ticket(
        self,
        subject: str,
        description: str,
        customer_email: str,
        category=None,
        priority=None
    ) -> Ticket:
        """
        Create a ticket, filling in category and priority from the classifier.

        The ticket is flagged for manual review when the classifier was
        needed but unavailable, or answered below the confidence threshold.
        """
        category = coerce_enum(TicketCategory, category, "category") if category is not None else None
        priority = coerce_enum(TicketPriority, priority, "priority") if priority is not None else None

        needs_review = False
        confidence = None
        if category is None or priority is None:
            result = await self.classify(subject, description)
            if result is None:
                needs_review = True
            else:
                confidence = result.confidence
                category = category or result.category
                priority = priority or result.priority
                if result.confidence < self._threshold:
                    needs_review = True
                    logger.info(
                        "Low-confidence classification",
                        extra={
                            "category": result.category.value,
                            "confidence": result.confidence,
                            "threshold": self._threshold
                        }
                    )

        return await self._lifecycle.create_ticket(
            subject=subject,
            description=description,
            customer_email=customer_email,
            category=category or DEFAULT_CATEGORY,
            priority=priority or DEFAULT_PRIORITY,
            needs_manual_review=needs_review,
            classification_confidence=confidence
        )


class AIUpdateGateway:
    """
    Applies ticket changes proposed by the AI assistant.

    Proposals go through ``TicketLifecycleService.update_ticket`` like any
    human edit, pinned to the ticket version they were made against.
    """

    def __init__(self, lifecycle: TicketLifecycleService):
        self._lifecycle = lifecycle

    async def apply(self, ticket_id: str, proposal: ProposedTicketUpdate) -> Ticket:
        """
        Apply the parts of a proposal that would change the ticket.

        Raises:
            ValidationException: Unknown values, or nothing would change
            InvalidStatusTransitionException: Proposed status is not allowed
            ConcurrencyConflictException: Ticket changed while applying
        """
        ticket = await self._lifecycle.get_ticket(ticket_id)

        status = coerce_enum(TicketStatus, proposal.status, "status") if proposal.status else None
        priority = coerce_enum(TicketPriority, proposal.priority, "priority") if proposal.priority else None
        category = coerce_enum(TicketCategory, proposal.category, "category") if proposal.category else None

        if status == ticket.status:
            status = None
        if priority == ticket.priority:
            priority = None
        if category == ticket.category:
            category = None

        if status is None and priority is None and category is None:
            raise ValidationException("No valid changes provided", {"ticket_id": ticket_id})

        updated = await self._lifecycle.update_ticket(
            ticket_id,
            status=status,
            priority=priority,
            category=category,
            closure_reason=proposal.closure_reason,
            actor=UpdateActor.AI,
            remark=proposal.rationale,
            expected_version=ticket.version
        )
        logger.info(
            "AI update applied",
            extra={
                "ticket_id": ticket_id,
                "status": status.value if status else None,
                "priority": priority.value if priority else None,
                "category": category.value if category else None
            }
        )
        return updated

    async def reject(self, ticket_id: str, reason: str) -> Ticket:
        """Record that a human rejected or overrode an AI proposal."""
        if not reason or not reason.strip():
            raise ValidationException("A rejection reason is required", {"ticket_id": ticket_id})
        ticket = await self._lifecycle.flag_manual_review(
            ticket_id, f"AI suggestion rejected: {reason.strip()}"
        )
        logger.info("AI update rejected", extra={"ticket_id": ticket_id})
        return ticket
