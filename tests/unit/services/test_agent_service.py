"""
Tests for the AgentService.
"""
import pytest

from supportdesk.config import TicketCategory
from supportdesk.core import AgentNotFoundException, ValidationException

from tests.fixtures.support import START, add_agent


class TestAgentService:

    @pytest.mark.asyncio
    async def test_register_defaults(self, agent_service):
        agent = await agent_service.register_agent(
            name="Dana",
            email="dana@support.example.com",
            categories=[TicketCategory.ACCOUNT]
        )

        assert agent.id
        assert agent.is_active is True
        assert agent.current_load == 0
        assert agent.max_load == 10
        assert agent.created_at == START
        assert (await agent_service.get_agent(agent.id)).name == "Dana"

    @pytest.mark.asyncio
    async def test_register_rejects_non_positive_max_load(self, agent_service):
        with pytest.raises(ValidationException):
            await agent_service.register_agent("Dana", "dana@x.com", [], max_load=0)

    @pytest.mark.asyncio
    async def test_unknown_category_is_validation_error(self, services, agent_service):
        with pytest.raises(ValidationException) as exc_info:
            await agent_service.register_agent("Dana", "dana@x.com", ["bogus"], max_load=3)
        assert exc_info.value.details["field"] == "categories"

        await add_agent(services, "alice", categories=(TicketCategory.BILLING,))
        with pytest.raises(ValidationException):
            await services.agents.update_profile("alice", categories=["billing", "refunds"])
        agent = await services.agents.get_agent("alice")
        assert agent.categories == frozenset({TicketCategory.BILLING})

    @pytest.mark.asyncio
    async def test_raw_category_values_are_accepted(self, agent_service):
        agent = await agent_service.register_agent("Dana", "dana@x.com", ["billing", "security"])
        assert agent.categories == frozenset({TicketCategory.BILLING, TicketCategory.SECURITY})

    @pytest.mark.asyncio
    async def test_list_is_sorted_by_id(self, services):
        await add_agent(services, "carol")
        await add_agent(services, "alice")
        agents = await services.agents.list_agents()
        assert [a.id for a in agents] == ["alice", "carol"]

    @pytest.mark.asyncio
    async def test_update_profile(self, services):
        await add_agent(services, "alice", [TicketCategory.BILLING], max_load=5)

        agent = await services.agents.update_profile(
            "alice", categories=["security", "account"], max_load=2
        )

        assert agent.categories == frozenset({TicketCategory.SECURITY, TicketCategory.ACCOUNT})
        assert agent.max_load == 2
        stored = await services.agents.get_agent("alice")
        assert stored.max_load == 2

    @pytest.mark.asyncio
    async def test_update_profile_keeps_load(self, services):
        await add_agent(services, "alice", max_load=5)
        await services.capacity.increment("alice")
        await services.capacity.increment("alice")

        agent = await services.agents.update_profile("alice", max_load=1)

        assert agent.current_load == 2
        assert not agent.is_eligible

    @pytest.mark.asyncio
    async def test_unknown_agent(self, agent_service):
        with pytest.raises(AgentNotFoundException):
            await agent_service.get_agent("ghost")
        with pytest.raises(AgentNotFoundException):
            await agent_service.update_profile("ghost", max_load=3)
