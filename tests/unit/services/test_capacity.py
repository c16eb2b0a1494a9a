"""
Tests for the CapacityTracker.
"""
import asyncio

import pytest

from supportdesk.core import AgentNotFoundException, CapacityExceededException

from tests.fixtures.support import add_agent, load_of


class TestCapacityTracker:

    @pytest.mark.asyncio
    async def test_increment_until_full(self, services):
        await add_agent(services, "alice", max_load=2)

        await services.capacity.increment("alice")
        agent = await services.capacity.increment("alice")
        assert agent.current_load == 2

        with pytest.raises(CapacityExceededException) as exc_info:
            await services.capacity.increment("alice")
        assert exc_info.value.current_load == 2
        assert exc_info.value.max_load == 2
        assert await load_of(services, "alice") == 2

    @pytest.mark.asyncio
    async def test_concurrent_increments_respect_max_load(self, services):
        await add_agent(services, "alice", max_load=3)

        results = await asyncio.gather(
            *[services.capacity.increment("alice") for _ in range(10)],
            return_exceptions=True
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, CapacityExceededException)]
        assert len(succeeded) == 3
        assert len(rejected) == 7
        assert await load_of(services, "alice") == 3

    @pytest.mark.asyncio
    async def test_decrement_never_goes_negative(self, services):
        await add_agent(services, "alice")
        agent = await services.capacity.decrement("alice")
        assert agent.current_load == 0

    @pytest.mark.asyncio
    async def test_transfer_moves_one_unit(self, services):
        await add_agent(services, "alice")
        await add_agent(services, "bob")
        await services.capacity.increment("alice")

        await services.capacity.transfer("alice", "bob")

        assert await load_of(services, "alice") == 0
        assert await load_of(services, "bob") == 1

    @pytest.mark.asyncio
    async def test_transfer_to_full_agent_changes_nothing(self, services):
        await add_agent(services, "alice")
        await add_agent(services, "bob", max_load=1)
        await services.capacity.increment("alice")
        await services.capacity.increment("bob")

        with pytest.raises(CapacityExceededException):
            await services.capacity.transfer("alice", "bob")

        assert await load_of(services, "alice") == 1
        assert await load_of(services, "bob") == 1

    @pytest.mark.asyncio
    async def test_unknown_agent(self, services):
        with pytest.raises(AgentNotFoundException):
            await services.capacity.increment("ghost")

    @pytest.mark.asyncio
    async def test_locks_are_released(self, services):
        await add_agent(services, "alice")
        await services.capacity.increment("alice")
        assert not services.capacity.locks.is_locked("alice")
        assert len(services.capacity.locks) == 0
