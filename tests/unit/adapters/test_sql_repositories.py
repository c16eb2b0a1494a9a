"""
Tests for the SQLAlchemy repositories against a mocked session.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from supportdesk.assignment.domain import Agent
from supportdesk.assignment.infrastructure.repositories import SQLAlchemyAgentRepository
from supportdesk.config import MessageRole, TicketCategory, TicketPriority, TicketStatus
from supportdesk.core import ConcurrencyConflictException, RepositoryException, TicketNotFoundException
from supportdesk.lifecycle.domain import Message, Ticket
from supportdesk.lifecycle.infrastructure.models import TicketMessageModel, TicketModel
from supportdesk.lifecycle.infrastructure.repositories import SQLAlchemyTicketRepository

from tests.fixtures.support import START


@pytest.fixture
def session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    return session


def make_ticket(version=1):
    ticket = Ticket.open_new(
        subject="Refund",
        description="Refund please",
        customer_email="p@example.com",
        category=TicketCategory.BILLING,
        priority=TicketPriority.HIGH,
        sla_due_at=START + timedelta(hours=24),
        created_at=START,
        ticket_id="t-1"
    )
    ticket.conversation.append(Message(MessageRole.CUSTOMER, "Refund please", START))
    ticket.version = version
    return ticket


class TestSQLAlchemyTicketRepository:

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, session):
        session.execute.return_value = MagicMock(rowcount=1)
        ticket = make_ticket(version=3)

        saved = await SQLAlchemyTicketRepository(session).update(ticket)

        assert saved.version == 4
        session.scalar.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_with_stale_version_conflicts(self, session):
        session.execute.return_value = MagicMock(rowcount=0)
        session.scalar.return_value = 5

        with pytest.raises(ConcurrencyConflictException) as exc_info:
            await SQLAlchemyTicketRepository(session).update(make_ticket(version=3))

        assert exc_info.value.details["expected_version"] == 3
        assert exc_info.value.details["actual_version"] == 5

    @pytest.mark.asyncio
    async def test_update_of_missing_ticket(self, session):
        session.execute.return_value = MagicMock(rowcount=0)
        session.scalar.return_value = None

        with pytest.raises(TicketNotFoundException):
            await SQLAlchemyTicketRepository(session).update(make_ticket())

    @pytest.mark.asyncio
    async def test_create_adds_ticket_and_messages(self, session):
        ticket = make_ticket(version=0)

        await SQLAlchemyTicketRepository(session).create(ticket)

        added = [call.args[0] for call in session.add.call_args_list]
        assert isinstance(added[0], TicketModel)
        assert added[0].version == 1
        assert added[0].status == "open"
        assert isinstance(added[1], TicketMessageModel)
        assert added[1].position == 1
        assert ticket.version == 1
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_rejects_duplicates(self, session):
        session.get.return_value = MagicMock()
        with pytest.raises(RepositoryException):
            await SQLAlchemyTicketRepository(session).create(make_ticket())

    @pytest.mark.asyncio
    async def test_append_message_uses_next_position(self, session):
        session.scalar.return_value = 4

        await SQLAlchemyTicketRepository(session).append_message(
            "t-1", Message(MessageRole.SYSTEM, "Ticket assigned to Alice", START)
        )

        model = session.add.call_args.args[0]
        assert model.position == 5
        assert model.role == "system"

    @pytest.mark.asyncio
    async def test_get_maps_row_to_domain(self, session):
        model = TicketModel(
            id="t-1",
            subject="Refund",
            description="Refund please",
            customer_email="p@example.com",
            category="billing",
            priority="high",
            status="in-progress",
            assigned_agent_id="alice",
            sla_due_at=(START + timedelta(hours=24)).replace(tzinfo=None),
            sla_breached=False,
            reopen_count=0,
            needs_manual_review=False,
            created_at=START,
            version=2,
            messages=[
                TicketMessageModel(ticket_id="t-1", position=1, role="customer",
                                   content="Refund please", timestamp=START)
            ]
        )
        result = MagicMock()
        result.scalar_one_or_none.return_value = model
        session.execute.return_value = result

        ticket = await SQLAlchemyTicketRepository(session).get_by_id("t-1")

        assert ticket.status == TicketStatus.IN_PROGRESS
        assert ticket.sla_due_at.tzinfo is not None
        assert ticket.version == 2
        assert ticket.conversation[0].role == MessageRole.CUSTOMER


class TestSQLAlchemyAgentRepository:

    @pytest.mark.asyncio
    async def test_stale_agent_update_conflicts(self, session):
        session.execute.return_value = MagicMock(rowcount=0)
        session.scalar.return_value = 2
        agent = Agent(id="alice", name="Alice", email="a@x.com", version=1)

        with pytest.raises(ConcurrencyConflictException):
            await SQLAlchemyAgentRepository(session).update(agent)
        assert agent.version == 1

    @pytest.mark.asyncio
    async def test_agent_update_bumps_version(self, session):
        session.execute.return_value = MagicMock(rowcount=1)
        agent = Agent(id="alice", name="Alice", email="a@x.com", current_load=2, version=1)

        saved = await SQLAlchemyAgentRepository(session).update(agent)

        assert saved.version == 2
