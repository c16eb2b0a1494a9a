"""
Tests for the ticket state machine and conversation log.
"""
from datetime import timedelta

import pytest

from supportdesk.config import MessageRole, TicketCategory, TicketPriority, TicketStatus
from supportdesk.core import (
    InvalidStatusTransitionException,
    TicketClosedException,
    ValidationException,
)
from supportdesk.lifecycle.domain import ConversationLog, Ticket, TicketStateMachine

from tests.fixtures.support import START


@pytest.fixture
def ticket():
    return Ticket.open_new(
        subject="Game crashes",
        description="The game crashes on start.",
        customer_email="player@example.com",
        category=TicketCategory.TECHNICAL,
        priority=TicketPriority.HIGH,
        sla_due_at=START + timedelta(hours=24),
        created_at=START,
        ticket_id="t-1"
    )


class TestTransitions:

    @pytest.mark.parametrize(
        "source,target",
        [
            (TicketStatus.OPEN, TicketStatus.IN_PROGRESS),
            (TicketStatus.IN_PROGRESS, TicketStatus.OPEN),
            (TicketStatus.OPEN, TicketStatus.RESOLVED),
            (TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED),
            (TicketStatus.RESOLVED, TicketStatus.CLOSED),
        ],
    )
    def test_allowed_edges(self, source, target):
        assert TicketStateMachine.can_transition(source, target)

    @pytest.mark.parametrize(
        "source,target",
        [
            (TicketStatus.RESOLVED, TicketStatus.OPEN),
            (TicketStatus.RESOLVED, TicketStatus.IN_PROGRESS),
            (TicketStatus.CLOSED, TicketStatus.OPEN),
            (TicketStatus.CLOSED, TicketStatus.RESOLVED),
        ],
    )
    def test_forbidden_edges(self, source, target):
        assert not TicketStateMachine.can_transition(source, target)

    def test_resolve_sets_timestamp(self, ticket):
        later = START + timedelta(hours=1)
        previous = TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, later)
        assert previous == TicketStatus.OPEN
        assert ticket.status == TicketStatus.RESOLVED
        assert ticket.resolved_at == later

    def test_close_requires_reason(self, ticket):
        with pytest.raises(ValidationException):
            TicketStateMachine.transition(ticket, TicketStatus.CLOSED, START, closure_reason="  ")
        assert ticket.status == TicketStatus.OPEN

    def test_close_records_reason(self, ticket):
        TicketStateMachine.transition(ticket, "closed", START, closure_reason=" duplicate ")
        assert ticket.closure_reason == "duplicate"
        assert ticket.closed_at == START

    def test_resolved_cannot_be_opened_explicitly(self, ticket):
        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, START)
        with pytest.raises(InvalidStatusTransitionException):
            TicketStateMachine.transition(ticket, TicketStatus.OPEN, START)

    def test_same_status_is_rejected(self, ticket):
        with pytest.raises(InvalidStatusTransitionException):
            TicketStateMachine.transition(ticket, TicketStatus.OPEN, START)

    def test_unknown_status_is_validation_error(self, ticket):
        with pytest.raises(ValidationException):
            TicketStateMachine.transition(ticket, "pending", START)

    def test_only_active_assigned_tickets_hold_capacity(self, ticket):
        assert not ticket.holds_capacity
        ticket.assigned_agent_id = "alice"
        assert ticket.holds_capacity
        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, START)
        assert not ticket.holds_capacity


class TestMessageRules:

    def test_customer_reply_reopens_resolved(self, ticket):
        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, START)
        later = START + timedelta(hours=2)
        assert TicketStateMachine.on_customer_message(ticket, later) is True
        assert ticket.status == TicketStatus.OPEN
        assert ticket.reopen_count == 1
        assert ticket.reopened_at == later

    def test_customer_reply_on_open_changes_nothing(self, ticket):
        assert TicketStateMachine.on_customer_message(ticket, START) is False
        assert ticket.reopen_count == 0

    def test_closed_rejects_every_message(self, ticket):
        TicketStateMachine.transition(ticket, TicketStatus.CLOSED, START, closure_reason="spam")
        with pytest.raises(TicketClosedException):
            TicketStateMachine.on_customer_message(ticket, START)
        with pytest.raises(TicketClosedException):
            TicketStateMachine.on_agent_message(ticket, START)

    def test_first_agent_reply_starts_work(self, ticket):
        previous = TicketStateMachine.on_agent_message(ticket, START)
        assert previous == TicketStatus.OPEN
        assert ticket.status == TicketStatus.IN_PROGRESS
        assert ticket.first_response_at == START

    def test_first_response_is_never_overwritten(self, ticket):
        TicketStateMachine.on_agent_message(ticket, START)
        later = START + timedelta(hours=5)
        assert TicketStateMachine.on_agent_message(ticket, later) is None
        assert ticket.first_response_at == START


class TestConversationLog:

    def test_append_keeps_order(self, ticket):
        ConversationLog.append(ticket, MessageRole.CUSTOMER, "hello", START)
        ConversationLog.append(ticket, "agent", "hi", START + timedelta(minutes=1))
        assert [m.content for m in ticket.conversation] == ["hello", "hi"]
        assert ticket.conversation[1].role == MessageRole.AGENT

    def test_rejects_blank_content(self, ticket):
        with pytest.raises(ValidationException):
            ConversationLog.append(ticket, MessageRole.CUSTOMER, "   ", START)
        assert ticket.conversation == []

    def test_rejects_unknown_role(self, ticket):
        with pytest.raises(ValidationException):
            ConversationLog.append(ticket, "bot", "hello", START)

    def test_timestamps_never_go_backwards(self, ticket):
        ConversationLog.append(ticket, MessageRole.CUSTOMER, "first", START)
        message = ConversationLog.append(ticket, MessageRole.AGENT, "second", START - timedelta(minutes=5))
        assert message.timestamp == START
