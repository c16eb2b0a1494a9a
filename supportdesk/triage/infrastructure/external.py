"""
Triage External Service Adapters
==================================

Classifier implementations used by the triage module.

Implements the interfaces defined in the application layer using concrete
external service implementations.
"""

import json
import re
import time

from supportdesk.config import TicketCategory, TicketPriority
from supportdesk.core import ClassifierUnavailableException, ExternalServiceException
from supportdesk.infrastructure.llm import ILLMClient
from supportdesk.triage.application import ITicketClassifier
from supportdesk.triage.domain import (
    CATEGORY_KEYWORDS,
    PRIORITY_KEYWORDS,
    ClassificationPromptBuilder,
    ClassificationResult,
)


class KeywordTicketClassifier(ITicketClassifier):
    """
    Scores tickets against fixed keyword lists.

    The category with the most keyword hits wins; ties go to the category
    listed first. Confidence grows with the winning margin. Security
    tickets are never below high priority.
    """

    NO_MATCH_CONFIDENCE = 0.3

    @staticmethod
    def _hits(text: str, keywords) -> int:
        return sum(1 for kw in keywords if re.search(rf"\b{re.escape(kw)}", text))

    def _category(self, text: str):
        scores = [(self._hits(text, kws), category) for category, kws in CATEGORY_KEYWORDS.items()]
        best_score = max(score for score, _ in scores)
        if best_score == 0:
            return TicketCategory.GENERAL, self.NO_MATCH_CONFIDENCE, 0

        best = next(category for score, category in scores if score == best_score)
        runner_up = max((score for score, category in scores if category != best), default=0)
        confidence = min(0.95, 0.5 + 0.15 * (best_score - runner_up) + 0.05 * best_score)
        return best, round(confidence, 2), best_score

    @staticmethod
    def _priority(text: str, category: TicketCategory) -> TicketPriority:
        priority = TicketPriority.MEDIUM
        for level, keywords in PRIORITY_KEYWORDS:
            if any(kw in text for kw in keywords):
                priority = level
                break
        if category == TicketCategory.SECURITY and priority in (TicketPriority.MEDIUM, TicketPriority.LOW):
            priority = TicketPriority.HIGH
        return priority

    async def classify(self, subject: str, description: str) -> ClassificationResult:
        start_time = time.perf_counter()
        text = f"{subject}\n{description}".lower()

        category, confidence, hits = self._category(text)
        priority = self._priority(text, category)

        return ClassificationResult(
            category=category,
            priority=priority,
            confidence=confidence,
            reasoning=f"{hits} keyword match(es) for {category.value}",
            model_used="keyword",
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )


class LLMTicketClassifier(ITicketClassifier):
    """
    Classifies tickets with a chat model returning JSON.

    Any failure, including an unparseable answer, is reported as
    ``ClassifierUnavailableException``.
    """

    def __init__(self, llm_client: ILLMClient):
        self._llm = llm_client

    @staticmethod
    def _extract_json(content_text: str) -> dict:
        if "```json" in content_text:
            content_text = content_text.split("```json")[1].split("```")[0].strip()
        elif "```" in content_text:
            content_text = content_text.split("```")[1].split("```")[0].strip()
        return json.loads(content_text)

    async def classify(self, subject: str, description: str) -> ClassificationResult:
        start_time = time.perf_counter()

        messages = [
            {"role": "system", "content": ClassificationPromptBuilder.get_system_prompt()},
            {"role": "user", "content": ClassificationPromptBuilder.build_prompt(subject, description)}
        ]

        try:
            response = await self._llm.chat_completion(
                messages=messages,
                temperature=0.0,
                max_tokens=300
            )
        except ExternalServiceException as e:
            raise ClassifierUnavailableException(e.message)

        try:
            result_data = self._extract_json(response.content)
            return ClassificationResult(
                category=TicketCategory(result_data.get("category", TicketCategory.GENERAL.value)),
                priority=TicketPriority(result_data.get("priority", TicketPriority.MEDIUM.value)),
                confidence=float(result_data.get("confidence", 0.5)),
                reasoning=result_data.get("reasoning", ""),
                model_used=response.model,
                latency_ms=int((time.perf_counter() - start_time) * 1000)
            )
        except (json.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
            raise ClassifierUnavailableException(f"Failed to parse classification response: {e}")
