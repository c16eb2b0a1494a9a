"""
Assignment Infrastructure Repositories
=======================================

Concrete implementations of the agent repository interface.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.assignment.application import IAgentRepository
from supportdesk.assignment.domain import Agent
from supportdesk.assignment.infrastructure.models import AgentModel
from supportdesk.config import TicketCategory
from supportdesk.core import ConcurrencyConflictException, RepositoryException
from supportdesk.infrastructure.database import as_utc
from supportdesk.infrastructure.memory import InMemoryStore, StagedChanges


def _to_domain(model: AgentModel) -> Agent:
    return Agent(
        id=model.id,
        name=model.name,
        email=model.email,
        categories=frozenset(TicketCategory(c) for c in model.categories),
        is_active=model.is_active,
        current_load=model.current_load,
        max_load=model.max_load,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
        version=model.version
    )


def _row_values(agent: Agent) -> dict:
    return {
        "name": agent.name,
        "email": agent.email,
        "categories": sorted(c.value for c in agent.categories),
        "is_active": agent.is_active,
        "current_load": agent.current_load,
        "max_load": agent.max_load,
        "updated_at": agent.updated_at,
    }


class SQLAlchemyAgentRepository(IAgentRepository):
    """
    SQLAlchemy implementation of agent repository.

    Saves are conditional on the stored version, so a stale agent can
    never overwrite a newer load counter.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        """Get agent by ID."""
        model = await self._session.get(AgentModel, agent_id, populate_existing=True)
        return _to_domain(model) if model else None

    async def create(self, agent: Agent) -> Agent:
        """Create new agent."""
        if await self._session.get(AgentModel, agent.id) is not None:
            raise RepositoryException(f"Agent {agent.id} already exists", {"agent_id": agent.id})

        agent.version = 1
        model = AgentModel(
            id=agent.id,
            created_at=agent.created_at,
            version=agent.version,
            **_row_values(agent)
        )
        self._session.add(model)
        await self._session.flush()
        return agent

    async def update(self, agent: Agent) -> Agent:
        """Save agent if nobody else has since."""
        stmt = (
            update(AgentModel)
            .where(AgentModel.id == agent.id, AgentModel.version == agent.version)
            .values(version=agent.version + 1, **_row_values(agent))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            actual = await self._session.scalar(
                select(AgentModel.version).where(AgentModel.id == agent.id)
            )
            if actual is None:
                raise RepositoryException(f"Agent {agent.id} not found", {"agent_id": agent.id})
            raise ConcurrencyConflictException("Agent", agent.id, agent.version, actual)

        agent.version += 1
        return agent

    async def list_all(self) -> List[Agent]:
        """List every agent."""
        result = await self._session.execute(
            select(AgentModel).order_by(AgentModel.id).execution_options(populate_existing=True)
        )
        return [_to_domain(model) for model in result.scalars().all()]


class InMemoryAgentRepository(IAgentRepository):
    """In-memory agent repository bound to one unit of work's staged changes."""

    def __init__(self, store: InMemoryStore, staged: StagedChanges):
        self._store = store
        self._staged = staged

    def _current(self, agent_id: str) -> Optional[Agent]:
        if agent_id in self._staged.agents:
            return self._staged.agents[agent_id]
        return self._store.agents.get(agent_id)

    async def get_by_id(self, agent_id: str) -> Optional[Agent]:
        current = self._current(agent_id)
        return current.copy() if current else None

    async def create(self, agent: Agent) -> Agent:
        if self._current(agent.id) is not None:
            raise RepositoryException(f"Agent {agent.id} already exists", {"agent_id": agent.id})
        self._staged.expect(self._store, "agent", agent.id)
        agent.version = 1
        self._staged.agents[agent.id] = agent.copy()
        return agent

    async def update(self, agent: Agent) -> Agent:
        current = self._current(agent.id)
        if current is None:
            raise RepositoryException(f"Agent {agent.id} not found", {"agent_id": agent.id})
        if current.version != agent.version:
            raise ConcurrencyConflictException("Agent", agent.id, agent.version, current.version)
        self._staged.expect(self._store, "agent", agent.id)
        agent.version += 1
        self._staged.agents[agent.id] = agent.copy()
        return agent

    async def list_all(self) -> List[Agent]:
        ids = set(self._store.agents) | set(self._staged.agents)
        return [self._current(agent_id).copy() for agent_id in sorted(ids)]
