"""
Tests for the keyword and LLM ticket classifiers.
"""
from unittest.mock import AsyncMock

import pytest

from supportdesk.config import TicketCategory, TicketPriority
from supportdesk.core import ClassifierUnavailableException, ExternalServiceException
from supportdesk.infrastructure.llm import ChatCompletionResult, ILLMClient
from supportdesk.triage.infrastructure import KeywordTicketClassifier, LLMTicketClassifier


def completion(content: str) -> ChatCompletionResult:
    return ChatCompletionResult(
        content=content,
        model="gpt-4o-mini",
        prompt_tokens=120,
        completion_tokens=30,
        latency_ms=250
    )


class TestKeywordTicketClassifier:

    @pytest.mark.asyncio
    async def test_billing_ticket(self, classifier):
        result = await classifier.classify("Refund", "I was charged twice for my purchase")
        assert result.category == TicketCategory.BILLING
        assert result.priority == TicketPriority.HIGH
        assert result.confidence > 0.6
        assert result.model_used == "keyword"

    @pytest.mark.asyncio
    async def test_urgent_wording(self, classifier):
        result = await classifier.classify("Game crash", "Urgent: the game crashes on every launch")
        assert result.priority == TicketPriority.URGENT

    @pytest.mark.asyncio
    async def test_security_is_at_least_high(self, classifier):
        result = await classifier.classify("Suspicious email", "I got a phishing message")
        assert result.category == TicketCategory.SECURITY
        assert result.priority == TicketPriority.HIGH

    @pytest.mark.asyncio
    async def test_no_match_is_general_with_low_confidence(self, classifier):
        result = await classifier.classify("Hello", "Just saying thanks")
        assert result.category == TicketCategory.GENERAL
        assert result.priority == TicketPriority.MEDIUM
        assert result.confidence == KeywordTicketClassifier.NO_MATCH_CONFIDENCE

    @pytest.mark.asyncio
    async def test_question_is_low_priority(self, classifier):
        result = await classifier.classify("Question", "How do I reset my password?")
        assert result.category == TicketCategory.ACCOUNT
        assert result.priority == TicketPriority.LOW


class TestLLMTicketClassifier:

    @pytest.fixture
    def llm(self):
        client = AsyncMock(spec=ILLMClient)
        return client

    @pytest.mark.asyncio
    async def test_parses_plain_json(self, llm):
        llm.chat_completion.return_value = completion(
            '{"category": "technical", "priority": "high", "confidence": 0.88, "reasoning": "crash"}'
        )

        result = await LLMTicketClassifier(llm).classify("Crash", "Crashes on start")

        assert result.category == TicketCategory.TECHNICAL
        assert result.priority == TicketPriority.HIGH
        assert result.confidence == 0.88
        assert result.model_used == "gpt-4o-mini"
        messages = llm.chat_completion.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert "Crashes on start" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, llm):
        llm.chat_completion.return_value = completion(
            'Sure:\n```json\n{"category": "billing", "priority": "urgent", "confidence": 0.7}\n```'
        )
        result = await LLMTicketClassifier(llm).classify("Charge", "Charged twice")
        assert result.category == TicketCategory.BILLING
        assert result.priority == TicketPriority.URGENT

    @pytest.mark.asyncio
    async def test_unparseable_answer(self, llm):
        llm.chat_completion.return_value = completion("I think it is billing")
        with pytest.raises(ClassifierUnavailableException):
            await LLMTicketClassifier(llm).classify("Charge", "Charged twice")

    @pytest.mark.asyncio
    async def test_unknown_category(self, llm):
        llm.chat_completion.return_value = completion('{"category": "refunds", "priority": "low"}')
        with pytest.raises(ClassifierUnavailableException):
            await LLMTicketClassifier(llm).classify("Charge", "Charged twice")

    @pytest.mark.asyncio
    async def test_out_of_range_confidence(self, llm):
        llm.chat_completion.return_value = completion(
            '{"category": "billing", "priority": "low", "confidence": 3}'
        )
        with pytest.raises(ClassifierUnavailableException):
            await LLMTicketClassifier(llm).classify("Charge", "Charged twice")

    @pytest.mark.asyncio
    async def test_client_failure(self, llm):
        llm.chat_completion.side_effect = ExternalServiceException("OpenAI", "timeout")
        with pytest.raises(ClassifierUnavailableException):
            await LLMTicketClassifier(llm).classify("Charge", "Charged twice")
