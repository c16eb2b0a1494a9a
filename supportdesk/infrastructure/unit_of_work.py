"""
Unit of Work Implementations
============================

SQLAlchemy and in-memory transaction boundaries binding the ticket and
agent repositories together.
"""

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supportdesk.assignment.infrastructure.repositories import (
    InMemoryAgentRepository,
    SQLAlchemyAgentRepository,
)
from supportdesk.core import ConcurrencyConflictException
from supportdesk.infrastructure.database import get_session_maker
from supportdesk.infrastructure.memory import InMemoryStore, StagedChanges
from supportdesk.lifecycle.infrastructure.repositories import (
    InMemoryTicketRepository,
    SQLAlchemyTicketRepository,
)
from supportdesk.shared.application import IUnitOfWork


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """One database session and transaction per unit of work."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    async def begin(self) -> None:
        factory = self._session_factory or get_session_maker()
        self._session = factory()
        self.tickets = SQLAlchemyTicketRepository(self._session)
        self.agents = SQLAlchemyAgentRepository(self._session)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class InMemoryUnitOfWork(IUnitOfWork):
    """
    Unit of work over an ``InMemoryStore``.

    Commit re-checks every version the staged writes were based on and then
    applies all of them without yielding to the event loop, so other tasks
    see either none or all of a unit of work's changes.
    """

    def __init__(self, store: InMemoryStore):
        self._store = store
        self._staged = StagedChanges()

    async def begin(self) -> None:
        self._staged = StagedChanges()
        self.tickets = InMemoryTicketRepository(self._store, self._staged)
        self.agents = InMemoryAgentRepository(self._store, self._staged)

    async def commit(self) -> None:
        staged = self._staged
        for (kind, entity_id), base in staged.base_versions.items():
            actual = self._store.committed_version(kind, entity_id)
            if actual != base:
                raise ConcurrencyConflictException(kind.capitalize(), entity_id, base, actual)

        self._store.tickets.update(staged.tickets)
        self._store.agents.update(staged.agents)
        for ticket_id, messages in staged.messages.items():
            self._store.messages.setdefault(ticket_id, []).extend(messages)
        self._staged = StagedChanges()

    async def rollback(self) -> None:
        self._staged = StagedChanges()


def sqlalchemy_uow_factory(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
) -> Callable[[], IUnitOfWork]:
    return lambda: SQLAlchemyUnitOfWork(session_factory)


def in_memory_uow_factory(store: Optional[InMemoryStore] = None) -> Callable[[], IUnitOfWork]:
    store = store or InMemoryStore()
    return lambda: InMemoryUnitOfWork(store)
