"""
Capacity Tracker
================

Sole writer of ``Agent.current_load``.

Every load change happens while the agent's keyed lock is held, and the
lock stays held until the surrounding unit of work has committed. That is
what makes check-then-increment atomic: two concurrent assignments to an
agent with one free slot serialise on the lock, and the second one sees
the first one's committed increment.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from supportdesk.assignment.domain import Agent
from supportdesk.core import (
    AgentInactiveException,
    AgentNotFoundException,
    CapacityExceededException,
)
from supportdesk.shared.application import UnitOfWorkFactory
from supportdesk.shared.infrastructure.locks import KeyedLock
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CapacityTracker:
    """
    Per-agent linearizable load bookkeeping.

    Two levels of API:

    - ``increment`` / ``decrement`` lock the agent and commit on their own.
    - ``hold`` + ``apply_increment`` / ``apply_decrement`` let a caller fold
      load changes into a larger unit of work (ticket + agents) while the
      agent locks are held across its commit.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, locks: Optional[KeyedLock] = None):
        self._uow_factory = uow_factory
        self._locks = locks or KeyedLock("agent")

    @property
    def locks(self) -> KeyedLock:
        return self._locks

    @asynccontextmanager
    async def hold(self, *agent_ids: Optional[str]) -> AsyncIterator[None]:
        """Hold the locks of the given agents (None entries ignored)."""
        async with self._locks.acquire_many(agent_ids):
            yield

    async def _load(self, agents, agent_id: str) -> Agent:
        agent = await agents.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundException(agent_id)
        return agent

    async def apply_increment(
        self,
        agents,
        agent_id: str,
        require_active: bool = False
    ) -> Agent:
        """
        Add one ticket to an agent's load inside the caller's unit of work.

        The caller must hold ``agent_id`` via ``hold``.

        Raises:
            AgentNotFoundException: Unknown agent
            AgentInactiveException: ``require_active`` and the agent is deactivated
            CapacityExceededException: The agent is already at ``max_load``
        """
        agent = await self._load(agents, agent_id)
        if require_active and not agent.is_active:
            raise AgentInactiveException(agent_id)
        if agent.current_load >= agent.max_load:
            raise CapacityExceededException(agent_id, agent.current_load, agent.max_load)

        agent.current_load += 1
        await agents.update(agent)

        logger.debug(
            "Agent load incremented",
            extra={"agent_id": agent_id, "current_load": agent.current_load}
        )
        return agent

    async def apply_decrement(self, agents, agent_id: str) -> Agent:
        """
        Remove one ticket from an agent's load inside the caller's unit of work.

        The caller must hold ``agent_id`` via ``hold``. Load never goes
        below zero.

        Raises:
            AgentNotFoundException: Unknown agent
        """
        agent = await self._load(agents, agent_id)
        if agent.current_load <= 0:
            logger.warning(
                "Agent load would go negative, keeping it at 0",
                extra={"agent_id": agent_id}
            )
            return agent

        agent.current_load -= 1
        await agents.update(agent)

        logger.debug(
            "Agent load decremented",
            extra={"agent_id": agent_id, "current_load": agent.current_load}
        )
        return agent

    async def increment(self, agent_id: str) -> Agent:
        """Atomically check capacity and add one ticket to an agent's load."""
        async with self.hold(agent_id):
            async with self._uow_factory() as uow:
                agent = await self.apply_increment(uow.agents, agent_id)
        return agent

    async def decrement(self, agent_id: str) -> Agent:
        """Atomically remove one ticket from an agent's load."""
        async with self.hold(agent_id):
            async with self._uow_factory() as uow:
                agent = await self.apply_decrement(uow.agents, agent_id)
        return agent

    async def transfer(self, from_agent_id: Optional[str], to_agent_id: str) -> Agent:
        """
        Move one ticket's worth of load between two agents as one step.

        Both agents are locked in sorted id order. If the target is full
        nothing changes.
        """
        async with self.hold(from_agent_id, to_agent_id):
            async with self._uow_factory() as uow:
                target = await self.apply_increment(uow.agents, to_agent_id)
                if from_agent_id is not None and from_agent_id != to_agent_id:
                    await self.apply_decrement(uow.agents, from_agent_id)
        return target
