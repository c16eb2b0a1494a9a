"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects for ticket classification
and for updates proposed by the AI assistant.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from supportdesk.config import TicketCategory, TicketPriority, TicketStatus


@dataclass
class ClassificationResult:
    """
    Result of ticket classification.

    Contains the category and priority suggested for a ticket.
    """
    category: TicketCategory
    priority: TicketPriority
    confidence: float  # 0.0 to 1.0
    reasoning: str = ""
    model_used: str = "keyword"
    latency_ms: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate classification result."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")


@dataclass
class ProposedTicketUpdate:
    """
    Changes the AI assistant suggests for a ticket.

    Values are raw strings as produced by the model; they are parsed and
    validated when the proposal is applied.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    closure_reason: Optional[str] = None
    rationale: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.status is None and self.priority is None and self.category is None


# Category keywords for auto-detection
CATEGORY_KEYWORDS: Dict[TicketCategory, Tuple[str, ...]] = {
    TicketCategory.ACCOUNT: (
        "password", "login", "account", "profile", "username", "2fa",
        "authentication", "banned", "suspended",
    ),
    TicketCategory.BILLING: (
        "payment", "refund", "charge", "invoice", "subscription", "plan",
        "price", "money", "credit", "purchase",
    ),
    TicketCategory.TECHNICAL: (
        "crash", "bug", "error", "lag", "performance", "install", "update",
        "driver", "connection",
    ),
    TicketCategory.GAMEPLAY: (
        "game", "level", "character", "item", "quest", "match", "rank",
        "progress", "save",
    ),
    TicketCategory.SECURITY: (
        "hack", "stolen", "compromised", "suspicious", "fraud", "scam", "phishing",
    ),
}

# Checked in order; first hit wins
PRIORITY_KEYWORDS: List[Tuple[TicketPriority, Tuple[str, ...]]] = [
    (TicketPriority.URGENT, ("urgent", "emergency", "asap", "immediately", "right now")),
    (TicketPriority.HIGH, ("not working", "can't", "cannot", "unable", "broken", "charged twice", "lost")),
    (TicketPriority.LOW, ("question", "how do i", "wondering", "suggestion", "feedback")),
]


class ClassificationPromptBuilder:
    """
    Builds prompts for ticket classification.

    Following DRY principle - all prompt logic in one place.
    """

    SYSTEM_PROMPT = """You are a ticket classification system for a game publisher's player support desk.

Your task is to analyze support tickets and classify them by:
1. Category: What area does the issue belong to?
2. Priority: How quickly must support respond?

CATEGORIES:
- account: Login, password, 2FA, bans and suspensions, profile issues
- billing: Payments, refunds, charges, invoices, subscriptions
- technical: Crashes, bugs, errors, lag, installation, connectivity
- gameplay: Levels, characters, items, quests, matches, progress and saves
- security: Hacked or stolen accounts, fraud, scams, phishing
- general: Anything else

PRIORITIES:
- urgent: Account compromised, money lost, player fully blocked
- high: Major feature broken, significant impact
- medium: Minor issues, workarounds available
- low: Questions, feedback, nice-to-have

Respond ONLY in JSON format:
{
    "category": "category",
    "priority": "priority",
    "confidence": 0.95,
    "reasoning": "brief explanation"
}"""

    @classmethod
    def build_prompt(cls, subject: str, description: str) -> str:
        """Build classification prompt from ticket content."""
        return f"""Subject: {subject}

Description:
{description}

Classify this ticket (respond with JSON only):"""

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for classification."""
        return cls.SYSTEM_PROMPT
