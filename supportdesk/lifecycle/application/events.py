"""
Ticket Event Dispatch
=====================

Delivers committed ticket events to the notifier in the background.

Notification is never on the critical path: ``dispatch`` only schedules
delivery, and a failing notifier is logged, not propagated.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Set

from supportdesk.lifecycle.domain import TicketEvent
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ITicketNotifier(ABC):
    """Interface for side-channel delivery of ticket events."""

    @abstractmethod
    async def notify(self, event: TicketEvent) -> None:
        """Accept an event for delivery."""


class EventDispatcher:
    """
    Fire-and-forget event delivery.

    Keeps a reference to every in-flight task so none is garbage collected
    mid-delivery, and so shutdown can wait for them with ``drain``.
    """

    def __init__(self, notifier: ITicketNotifier):
        self._notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, events: Iterable[TicketEvent]) -> None:
        """Schedule delivery of events, in order, without waiting."""
        events = list(events)
        if not events:
            return
        task = asyncio.create_task(self._deliver(events))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, events) -> None:
        for event in events:
            try:
                await self._notifier.notify(event)
            except Exception as e:
                logger.error(
                    "Ticket event delivery failed",
                    extra={
                        "ticket_id": event.ticket_id,
                        "event_type": event.event_type.value,
                        "error": str(e)
                    }
                )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries to finish."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(
                "Ticket events still pending after drain timeout",
                extra={"pending": len(pending)}
            )
