"""
Tests for webhook delivery and the circuit breaker.
"""
import json

import httpx
import pytest

from supportdesk.config import TicketEventType
from supportdesk.lifecycle.domain import TicketEvent
from supportdesk.lifecycle.infrastructure import CircuitBreaker, CircuitState, WebhookNotifier

from tests.fixtures.support import START

WEBHOOK_URL = "https://hooks.example.com/support"


def event(ticket_id="t-1"):
    return TicketEvent(TicketEventType.SLA_BREACHED, ticket_id, START, {"priority": "urgent"})


def notifier_for(handler, max_retries=3, breaker=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookNotifier(
        url=WEBHOOK_URL,
        timeout_seconds=1.0,
        max_retries=max_retries,
        circuit_breaker=breaker or CircuitBreaker(failure_threshold=2, recovery_timeout=30),
        http_client=client,
        backoff_base=0
    )


class TestWebhookNotifier:

    @pytest.mark.asyncio
    async def test_posts_event_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(204)

        notifier = notifier_for(handler)
        assert await notifier.send(event()) is True
        await notifier.close()

        assert received == [{
            "event": "ticket.sla_breached",
            "ticket_id": "t-1",
            "occurred_at": START.isoformat(),
            "data": {"priority": "urgent"}
        }]

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        statuses = iter([503, 500, 200])

        def handler(request):
            return httpx.Response(next(statuses))

        notifier = notifier_for(handler)
        assert await notifier.send(event()) is True
        assert notifier.circuit_breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        notifier = notifier_for(handler, max_retries=2)
        assert await notifier.send(event()) is False
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        notifier = notifier_for(handler, max_retries=0)
        await notifier.send(event())
        await notifier.send(event())
        assert notifier.circuit_breaker.state == CircuitState.OPEN

        assert await notifier.send(event()) is False
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_no_url_skips_delivery(self):
        notifier = WebhookNotifier(url="", http_client=httpx.AsyncClient())
        assert await notifier.send(event()) is False
        await notifier.close()


class TestCircuitBreaker:

    def test_half_open_after_recovery_timeout(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=lambda: now[0])

        breaker.record_failure()
        assert not breaker.allow_request()

        now[0] = 11.0
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request()

    def test_failure_in_half_open_reopens(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=10, clock=lambda: now[0])
        for _ in range(3):
            breaker.record_failure()
        now[0] = 20.0
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1)
        breaker.record_failure()
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED
