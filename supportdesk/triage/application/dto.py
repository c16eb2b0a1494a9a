"""
Triage Application DTOs
========================

Data Transfer Objects for Triage API layer.

Pydantic models for request/response validation.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from supportdesk.config import TicketCategory, TicketPriority
from supportdesk.triage.domain import ClassificationResult, ProposedTicketUpdate


# ========== Request DTOs ==========

class ClassifyRequest(BaseModel):
    """Request model for previewing a classification."""
    subject: str = Field(..., min_length=1, description="Ticket subject")
    description: str = Field(..., min_length=1, description="Ticket description")

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str) -> str:
        """Ensure description is not too long for the classifier."""
        if len(v) > 10000:
            raise ValueError("Description too long (max 10000 characters)")
        return v


class ProposedUpdateRequest(BaseModel):
    """
    Request model for an AI-proposed ticket update.

    Values stay strings here; unknown ones are rejected when applied.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    closure_reason: Optional[str] = Field(None, max_length=1000)
    rationale: Optional[str] = Field(None, max_length=2000)

    def to_domain(self) -> ProposedTicketUpdate:
        return ProposedTicketUpdate(
            status=self.status,
            priority=self.priority,
            category=self.category,
            closure_reason=self.closure_reason,
            rationale=self.rationale
        )


class RejectProposalRequest(BaseModel):
    """Request model for rejecting an AI proposal."""
    reason: str = Field(..., min_length=1, max_length=1000)


# ========== Response DTOs ==========

class ClassificationResponse(BaseModel):
    """Response model for ticket classification."""
    available: bool = Field(..., description="False when the classifier could not answer")
    category: TicketCategory
    priority: TicketPriority
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    needs_manual_review: bool

    @classmethod
    def from_result(cls, result: Optional[ClassificationResult], threshold: float) -> "ClassificationResponse":
        if result is None:
            return cls(
                available=False,
                category=TicketCategory.GENERAL,
                priority=TicketPriority.MEDIUM,
                needs_manual_review=True
            )
        return cls(
            available=True,
            category=result.category,
            priority=result.priority,
            confidence=result.confidence,
            reasoning=result.reasoning,
            needs_manual_review=result.confidence < threshold
        )
