"""
Tests for ticket intake and the AI update gateway.
"""
import pytest

from supportdesk.config import MessageRole, TicketCategory, TicketPriority, TicketStatus
from supportdesk.core import (
    ClassifierUnavailableException,
    ConcurrencyConflictException,
    InvalidStatusTransitionException,
    ValidationException,
)
from supportdesk.triage.application import TicketIntakeService
from supportdesk.triage.domain import ClassificationResult, ProposedTicketUpdate

from tests.fixtures.support import ScriptedClassifier, add_agent, open_ticket


def intake_with(services, classifier, timeout=1.0, threshold=0.6):
    return TicketIntakeService(
        services.lifecycle,
        classifier,
        timeout_seconds=timeout,
        confidence_threshold=threshold
    )


class TestTicketIntake:

    @pytest.mark.asyncio
    async def test_classifier_fills_category_and_priority(self, services):
        await add_agent(services, "alice")
        ticket = await services.intake.open_ticket(
            subject="Charged twice",
            description="I was charged twice for my subscription, please refund",
            customer_email="player@example.com"
        )

        assert ticket.category == TicketCategory.BILLING
        assert ticket.priority == TicketPriority.HIGH
        assert ticket.needs_manual_review is False
        assert ticket.classification_confidence >= 0.6

    @pytest.mark.asyncio
    async def test_caller_values_skip_the_classifier(self, services):
        await add_agent(services, "alice")
        classifier = ScriptedClassifier(error=ClassifierUnavailableException("down"))
        intake = intake_with(services, classifier)

        ticket = await intake.open_ticket(
            "Question", "How do I change my name?", "p@example.com",
            category="account", priority="low"
        )

        assert classifier.calls == 0
        assert ticket.category == TicketCategory.ACCOUNT
        assert ticket.priority == TicketPriority.LOW
        assert ticket.needs_manual_review is False

    @pytest.mark.asyncio
    async def test_caller_category_wins_over_suggestion(self, services):
        suggestion = ClassificationResult(TicketCategory.BILLING, TicketPriority.URGENT, 0.9)
        intake = intake_with(services, ScriptedClassifier(result=suggestion))

        ticket = await intake.open_ticket("Hi", "Text", "p@example.com", category=TicketCategory.GAMEPLAY)

        assert ticket.category == TicketCategory.GAMEPLAY
        assert ticket.priority == TicketPriority.URGENT

    @pytest.mark.asyncio
    async def test_unavailable_classifier_falls_back_and_flags(self, services):
        intake = intake_with(services, ScriptedClassifier(error=ClassifierUnavailableException("down")))

        ticket = await intake.open_ticket("Hi", "Text", "p@example.com")

        assert ticket.category == TicketCategory.GENERAL
        assert ticket.priority == TicketPriority.MEDIUM
        assert ticket.needs_manual_review is True
        assert ticket.classification_confidence is None

    @pytest.mark.asyncio
    async def test_slow_classifier_times_out(self, services):
        suggestion = ClassificationResult(TicketCategory.BILLING, TicketPriority.URGENT, 0.9)
        intake = intake_with(services, ScriptedClassifier(result=suggestion, delay=1.0), timeout=0.01)

        ticket = await intake.open_ticket("Hi", "Text", "p@example.com")

        assert ticket.category == TicketCategory.GENERAL
        assert ticket.needs_manual_review is True

    @pytest.mark.asyncio
    async def test_low_confidence_is_flagged(self, services):
        suggestion = ClassificationResult(TicketCategory.TECHNICAL, TicketPriority.HIGH, 0.4)
        intake = intake_with(services, ScriptedClassifier(result=suggestion))

        ticket = await intake.open_ticket("Hi", "Text", "p@example.com")

        assert ticket.category == TicketCategory.TECHNICAL
        assert ticket.needs_manual_review is True
        assert ticket.classification_confidence == 0.4

    @pytest.mark.asyncio
    async def test_classify_returns_none_when_unavailable(self, services):
        intake = intake_with(services, ScriptedClassifier(error=ClassifierUnavailableException("down")))
        assert await intake.classify("Hi", "Text") is None


class TestAIUpdateGateway:

    @pytest.mark.asyncio
    async def test_apply_goes_through_lifecycle(self, services):
        ticket = await open_ticket(services)

        updated = await services.ai_gateway.apply(
            ticket.id,
            ProposedTicketUpdate(priority="urgent", category="billing", rationale="Money lost")
        )

        assert updated.priority == TicketPriority.URGENT
        assert updated.category == TicketCategory.BILLING
        assert updated.version == ticket.version + 1
        note = updated.conversation[-1]
        assert note.role == MessageRole.SYSTEM
        assert note.content.startswith("AI updated: ")
        assert note.content.endswith("Remark: Money lost")

    @pytest.mark.asyncio
    async def test_unchanged_fields_are_dropped(self, services):
        ticket = await open_ticket(services, priority=TicketPriority.HIGH)

        updated = await services.ai_gateway.apply(
            ticket.id, ProposedTicketUpdate(priority="high", status="resolved")
        )

        assert updated.status == TicketStatus.RESOLVED
        assert "priority" not in updated.conversation[-1].content

    @pytest.mark.asyncio
    async def test_proposal_without_effect_is_rejected(self, services):
        ticket = await open_ticket(services)
        with pytest.raises(ValidationException):
            await services.ai_gateway.apply(ticket.id, ProposedTicketUpdate(priority="medium"))

    @pytest.mark.asyncio
    async def test_invalid_values_are_rejected(self, services):
        ticket = await open_ticket(services)
        with pytest.raises(ValidationException):
            await services.ai_gateway.apply(ticket.id, ProposedTicketUpdate(status="escalated"))

    @pytest.mark.asyncio
    async def test_disallowed_transition(self, services):
        ticket = await open_ticket(services)
        await services.lifecycle.update_ticket(ticket.id, status=TicketStatus.RESOLVED)
        with pytest.raises(InvalidStatusTransitionException):
            await services.ai_gateway.apply(ticket.id, ProposedTicketUpdate(status="in-progress"))

    @pytest.mark.asyncio
    async def test_stale_proposal_conflicts(self, services, monkeypatch):
        ticket = await open_ticket(services)
        lifecycle = services.lifecycle
        original_get = lifecycle.get_ticket

        async def get_then_race(ticket_id):
            snapshot = await original_get(ticket_id)
            await lifecycle.update_ticket(ticket_id, priority=TicketPriority.LOW)
            return snapshot

        monkeypatch.setattr(lifecycle, "get_ticket", get_then_race)

        with pytest.raises(ConcurrencyConflictException):
            await services.ai_gateway.apply(ticket.id, ProposedTicketUpdate(priority="urgent"))

    @pytest.mark.asyncio
    async def test_reject_flags_for_review(self, services):
        await add_agent(services, "alice")
        ticket = await open_ticket(services)
        flagged = await services.ai_gateway.reject(ticket.id, "wrong category")
        assert flagged.needs_manual_review is True
        assert flagged.conversation[-1].content == (
            "Flagged for manual review: AI suggestion rejected: wrong category"
        )

    @pytest.mark.asyncio
    async def test_reject_on_flagged_ticket_keeps_the_reason(self, services):
        ticket = await open_ticket(services)
        assert ticket.needs_manual_review is True

        flagged = await services.ai_gateway.reject(ticket.id, "wrong category")

        assert flagged.needs_manual_review is True
        assert flagged.version == ticket.version + 1
        assert flagged.conversation[-1].content == (
            "Flagged for manual review: AI suggestion rejected: wrong category"
        )

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, services):
        ticket = await open_ticket(services)
        with pytest.raises(ValidationException):
            await services.ai_gateway.reject(ticket.id, "  ")
