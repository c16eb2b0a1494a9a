"""
Assignment Application Services
================================

Agent directory operations and the agent repository port.

Following SOLID principles:
- Single Responsibility: load changes belong to the CapacityTracker,
  profile changes to the AgentService
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from supportdesk.assignment.application.capacity import CapacityTracker
from supportdesk.assignment.domain import Agent
from supportdesk.config import TicketCategory, coerce_enum
from supportdesk.core import AgentNotFoundException, ValidationException
from supportdesk.shared.application import UnitOfWorkFactory
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAgentRepository(ABC):
    """Interface for agent data access."""

    @abstractmethod
    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        """Get agent by ID."""

    @abstractmethod
    async def create(self, agent: Agent) -> Agent:
        """Create new agent."""

    @abstractmethod
    async def update(self, agent: Agent) -> Agent:
        """
        Save an existing agent.

        Raises:
            ConcurrencyConflictException: If ``agent.version`` is stale
        """

    @abstractmethod
    async def list_all(self) -> List[Agent]:
        """List every agent."""


# ========== Application Services ==========

class AgentService:
    """
    Service for registering and maintaining agents.

    Writes to an agent document happen under the agent's capacity lock so
    they never race with load changes.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        capacity: CapacityTracker,
        default_max_load: int = 10,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._uow_factory = uow_factory
        self._capacity = capacity
        self._default_max_load = default_max_load
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def register_agent(
        self,
        name: str,
        email: str,
        categories: List[TicketCategory],
        max_load: Optional[int] = None,
        agent_id: Optional[str] = None
    ) -> Agent:
        """
        Register a new active agent with an empty queue.

        Raises:
            ValidationException: Unknown category or non-positive ``max_load``
        """
        categories = [coerce_enum(TicketCategory, c, "categories") for c in categories]
        max_load = self._default_max_load if max_load is None else max_load
        if max_load <= 0:
            raise ValidationException("max_load must be positive", {"max_load": max_load})

        agent = Agent.register(name, email, categories, max_load, agent_id=agent_id)
        agent.created_at = self._clock()

        async with self._uow_factory() as uow:
            await uow.agents.create(agent)

        logger.info(
            "Agent registered",
            extra={
                "agent_id": agent.id,
                "categories": sorted(c.value for c in agent.categories),
                "max_load": agent.max_load
            }
        )
        return agent

    async def get_agent(self, agent_id: str) -> Agent:
        """
        Get an agent.

        Raises:
            AgentNotFoundException: Unknown agent
        """
        async with self._uow_factory() as uow:
            agent = await uow.agents.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundException(agent_id)
        return agent

    async def list_agents(self) -> List[Agent]:
        """List every agent ordered by id."""
        async with self._uow_factory() as uow:
            agents = await uow.agents.list_all()
        return sorted(agents, key=lambda a: a.id)

    async def update_profile(
        self,
        agent_id: str,
        categories: Optional[List[TicketCategory]] = None,
        max_load: Optional[int] = None
    ) -> Agent:
        """
        Change an agent's qualifications or capacity.

        Lowering ``max_load`` below the current load is allowed; the agent
        simply takes no new tickets until it drains.
        """
        if categories is not None:
            categories = [coerce_enum(TicketCategory, c, "categories") for c in categories]
        if max_load is not None and max_load <= 0:
            raise ValidationException("max_load must be positive", {"max_load": max_load})

        async with self._capacity.hold(agent_id):
            async with self._uow_factory() as uow:
                agent = await uow.agents.get_by_id(agent_id)
                if agent is None:
                    raise AgentNotFoundException(agent_id)
                if categories is not None:
                    agent.categories = frozenset(categories)
                if max_load is not None:
                    agent.max_load = max_load
                agent.updated_at = self._clock()
                await uow.agents.update(agent)

        return agent
