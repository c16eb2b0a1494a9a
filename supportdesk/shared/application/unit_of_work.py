"""
Unit of Work
============

Transaction boundary shared by the lifecycle and assignment contexts.

A ticket transition can touch the ticket, its conversation and up to two
agent documents; all of it is committed together or not at all.

Usage:
    async with uow_factory() as uow:
        ticket = await uow.tickets.get_by_id(ticket_id)
        ...
        await uow.tickets.update(ticket)
    # committed here; rolled back if the block raised
"""

from abc import ABC, abstractmethod
from typing import Any, Callable


class IUnitOfWork(ABC):
    """
    Interface for a transactional unit of work.

    Exposes ``tickets`` and ``agents`` repositories bound to the same
    transaction. Leaving the context without an exception commits;
    leaving it with one rolls back and re-raises.
    """

    tickets: Any
    agents: Any

    async def __aenter__(self) -> "IUnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                try:
                    await self.commit()
                except Exception:
                    await self.rollback()
                    raise
            else:
                await self.rollback()
        finally:
            await self.close()
        return False

    @abstractmethod
    async def begin(self) -> None:
        """Start the transaction and bind the repositories."""

    @abstractmethod
    async def commit(self) -> None:
        """Make every staged change durable at once."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every staged change."""

    async def close(self) -> None:
        """Release underlying resources."""


UnitOfWorkFactory = Callable[[], IUnitOfWork]
