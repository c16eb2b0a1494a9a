"""
Test doubles shared by the unit tests.

This module contains a controllable clock, a notifier that records what it
is sent, a scripted classifier and small helpers for seeding agents and
tickets.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from supportdesk.bootstrap import SupportDeskServices
from supportdesk.config import TicketCategory, TicketPriority
from supportdesk.lifecycle.application import ITicketNotifier
from supportdesk.lifecycle.domain import TicketEvent
from supportdesk.triage.application import ITicketClassifier
from supportdesk.triage.domain import ClassificationResult

START = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotifier(ITicketNotifier):
    """Keeps every event it is asked to deliver."""

    def __init__(self):
        self.events: List[TicketEvent] = []

    async def notify(self, event: TicketEvent) -> None:
        self.events.append(event)

    def types(self, ticket_id: Optional[str] = None) -> List[str]:
        return [
            e.event_type.value for e in self.events
            if ticket_id is None or e.ticket_id == ticket_id
        ]


class ScriptedClassifier(ITicketClassifier):
    """Returns a fixed result, raises a fixed error, or stalls."""

    def __init__(
        self,
        result: Optional[ClassificationResult] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0
    ):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = 0

    async def classify(self, subject: str, description: str) -> ClassificationResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


async def add_agent(
    services: SupportDeskServices,
    agent_id: str,
    categories=(),
    max_load: int = 10,
    name: Optional[str] = None
):
    """Register an agent with a predictable id."""
    return await services.agents.register_agent(
        name=name or agent_id.capitalize(),
        email=f"{agent_id}@support.example.com",
        categories=list(categories),
        max_load=max_load,
        agent_id=agent_id
    )


async def open_ticket(
    services: SupportDeskServices,
    category=TicketCategory.GENERAL,
    priority=TicketPriority.MEDIUM,
    subject: str = "Something is wrong",
    description: str = "Please help me with my problem.",
    customer_email: str = "player@example.com"
):
    """Create a ticket directly through the lifecycle service."""
    return await services.lifecycle.create_ticket(
        subject=subject,
        description=description,
        customer_email=customer_email,
        category=category,
        priority=priority
    )


async def load_of(services: SupportDeskServices, agent_id: str) -> int:
    agent = await services.agents.get_agent(agent_id)
    return agent.current_load
