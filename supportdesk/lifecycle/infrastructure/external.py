"""
Lifecycle External Service Adapters
====================================

Notifier implementations that deliver ticket events off the critical path.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from supportdesk.config import settings
from supportdesk.lifecycle.application import ITicketNotifier
from supportdesk.lifecycle.domain import TicketEvent
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock=time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED
        self._opened_at = None

    def record_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class LoggingNotifier(ITicketNotifier):
    """Writes events to the application log. Used when no webhook is configured."""

    async def notify(self, event: TicketEvent) -> None:
        logger.info(
            "Ticket event",
            extra={"event_type": event.event_type.value, "ticket_id": event.ticket_id, "data": event.payload}
        )


class WebhookNotifier(ITicketNotifier):
    """
    Posts ticket events as JSON to a webhook.

    Handles delivery with:
    - Circuit breaker to stop hammering a dead endpoint
    - Exponential backoff retry (1s, 2s, 4s, ...)
    - Timeout handling
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff_base: float = 1.0
    ):
        self._url = url if url is not None else settings.webhook_url
        self._timeout = timeout_seconds or settings.webhook_timeout_seconds
        self._max_retries = settings.webhook_max_retries if max_retries is None else max_retries
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client
        self._backoff_base = backoff_base

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    @staticmethod
    def _build_payload(event: TicketEvent) -> Dict[str, Any]:
        return event.to_dict()

    async def notify(self, event: TicketEvent) -> None:
        await self.send(event)

    async def send(self, event: TicketEvent) -> bool:
        """
        Deliver one event.

        Returns:
            True if the webhook accepted it, False otherwise
        """
        if not self._url:
            logger.debug("Webhook URL not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping webhook notification",
                extra={"ticket_id": event.ticket_id, "event_type": event.event_type.value}
            )
            return False

        payload = self._build_payload(event)
        attempts = self._max_retries + 1

        for attempt in range(attempts):
            try:
                client = await self._get_client()
                response = await client.post(self._url, json=payload)

                if 200 <= response.status_code < 300:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Webhook notification sent",
                        extra={"ticket_id": event.ticket_id, "event_type": event.event_type.value}
                    )
                    return True

                logger.warning(
                    "Webhook returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )

            except httpx.HTTPError as e:
                logger.error(
                    "Webhook notification failed",
                    extra={"error": str(e), "attempt": attempt + 1, "ticket_id": event.ticket_id}
                )

            if attempt < attempts - 1:
                await asyncio.sleep(self._backoff_base * 2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
