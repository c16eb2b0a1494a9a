"""
Assignment Domain Entities
==========================

Pure Python domain entities for agent routing and capacity.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional
from uuid import uuid4

from supportdesk.config import TicketCategory


@dataclass
class Agent:
    """
    Support agent that tickets can be routed to.

    ``current_load`` counts the open and in-progress tickets assigned to
    the agent. Only the CapacityTracker changes it.
    """

    id: str
    name: str
    email: str
    categories: FrozenSet[TicketCategory] = field(default_factory=frozenset)
    is_active: bool = True
    current_load: int = 0
    max_load: int = 10

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    # Optimistic-concurrency revision, bumped by the repository on save
    version: int = 0

    def __post_init__(self):
        """Validate agent on initialization."""
        self.categories = frozenset(TicketCategory(c) for c in self.categories)
        if self.max_load <= 0:
            raise ValueError("max_load must be positive")
        if self.current_load < 0:
            raise ValueError("current_load cannot be negative")

    @classmethod
    def register(
        cls,
        name: str,
        email: str,
        categories: Iterable[TicketCategory],
        max_load: int,
        agent_id: Optional[str] = None
    ) -> "Agent":
        """Create a new active agent with no tickets."""
        return cls(
            id=agent_id or str(uuid4()),
            name=name,
            email=email,
            categories=frozenset(categories),
            max_load=max_load
        )

    @property
    def has_capacity(self) -> bool:
        """Check if the agent can take one more ticket."""
        return self.current_load < self.max_load

    @property
    def is_eligible(self) -> bool:
        """Active and under capacity."""
        return self.is_active and self.has_capacity

    def handles(self, category: TicketCategory) -> bool:
        """Check if the agent is qualified for a category."""
        return TicketCategory(category) in self.categories

    def copy(self) -> "Agent":
        return dataclasses.replace(self)


@dataclass(frozen=True)
class AgentWorkload:
    """An agent's load counter next to a fresh count of its open tickets."""
    agent_id: str
    name: str
    is_active: bool
    current_load: int
    max_load: int
    open_tickets: int

    @property
    def consistent(self) -> bool:
        return self.current_load == self.open_tickets
