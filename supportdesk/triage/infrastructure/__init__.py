"""
Triage Infrastructure Layer
===========================

Keyword and LLM classifier implementations.
"""

from supportdesk.triage.infrastructure.external import (
    KeywordTicketClassifier,
    LLMTicketClassifier,
)

__all__ = [
    "KeywordTicketClassifier",
    "LLMTicketClassifier",
]
