"""
Triage Domain Layer
===================

Domain layer for ticket triage.

Contains:
- Entities: ClassificationResult, ProposedTicketUpdate
- Keyword tables and the LLM prompt builder

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supportdesk.triage.domain.entities import (
    CATEGORY_KEYWORDS,
    PRIORITY_KEYWORDS,
    ClassificationPromptBuilder,
    ClassificationResult,
    ProposedTicketUpdate,
)

__all__ = [
    "ClassificationResult",
    "ProposedTicketUpdate",
    "CATEGORY_KEYWORDS",
    "PRIORITY_KEYWORDS",
    "ClassificationPromptBuilder",
]
