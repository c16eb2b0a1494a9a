"""
Lifecycle Infrastructure Repositories
======================================

Concrete implementations of the ticket repository interface.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.config import MessageRole, TicketCategory, TicketPriority, TicketStatus
from supportdesk.core import ConcurrencyConflictException, RepositoryException, TicketNotFoundException
from supportdesk.infrastructure.database import as_utc
from supportdesk.infrastructure.memory import InMemoryStore, StagedChanges
from supportdesk.lifecycle.application import ITicketRepository
from supportdesk.lifecycle.domain import Message, Ticket
from supportdesk.lifecycle.infrastructure.models import TicketMessageModel, TicketModel


def _to_domain(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        subject=model.subject,
        description=model.description,
        customer_email=model.customer_email,
        category=TicketCategory(model.category),
        priority=TicketPriority(model.priority),
        status=TicketStatus(model.status),
        assigned_agent_id=model.assigned_agent_id,
        sla_due_at=as_utc(model.sla_due_at),
        sla_breached=model.sla_breached,
        first_response_at=as_utc(model.first_response_at),
        resolved_at=as_utc(model.resolved_at),
        closed_at=as_utc(model.closed_at),
        closure_reason=model.closure_reason,
        reopen_count=model.reopen_count,
        reopened_at=as_utc(model.reopened_at),
        needs_manual_review=model.needs_manual_review,
        classification_confidence=model.classification_confidence,
        conversation=[
            Message(role=MessageRole(m.role), content=m.content, timestamp=as_utc(m.timestamp))
            for m in model.messages
        ],
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
        version=model.version
    )


def _row_values(ticket: Ticket) -> dict:
    return {
        "subject": ticket.subject,
        "description": ticket.description,
        "customer_email": ticket.customer_email,
        "category": ticket.category.value,
        "priority": ticket.priority.value,
        "status": ticket.status.value,
        "assigned_agent_id": ticket.assigned_agent_id,
        "sla_due_at": ticket.sla_due_at,
        "sla_breached": ticket.sla_breached,
        "first_response_at": ticket.first_response_at,
        "resolved_at": ticket.resolved_at,
        "closed_at": ticket.closed_at,
        "closure_reason": ticket.closure_reason,
        "reopen_count": ticket.reopen_count,
        "reopened_at": ticket.reopened_at,
        "needs_manual_review": ticket.needs_manual_review,
        "classification_confidence": ticket.classification_confidence,
        "updated_at": ticket.updated_at,
    }


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Ticket rows are saved with ``UPDATE ... WHERE version = :expected``;
    messages are inserted with increasing positions and never updated.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_domain(model) if model else None

    async def create(self, ticket: Ticket) -> Ticket:
        """Create new ticket with its initial conversation."""
        if await self._session.get(TicketModel, ticket.id) is not None:
            raise RepositoryException(f"Ticket {ticket.id} already exists", {"ticket_id": ticket.id})

        ticket.version = 1
        self._session.add(TicketModel(
            id=ticket.id,
            created_at=ticket.created_at,
            version=ticket.version,
            **_row_values(ticket)
        ))
        for position, message in enumerate(ticket.conversation, start=1):
            self._session.add(self._message_model(ticket.id, position, message))

        await self._session.flush()
        return ticket

    async def update(self, ticket: Ticket) -> Ticket:
        """Save ticket fields if nobody else has since."""
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket.id, TicketModel.version == ticket.version)
            .values(version=ticket.version + 1, **_row_values(ticket))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            actual = await self._session.scalar(
                select(TicketModel.version).where(TicketModel.id == ticket.id)
            )
            if actual is None:
                raise TicketNotFoundException(ticket.id)
            raise ConcurrencyConflictException("Ticket", ticket.id, ticket.version, actual)

        ticket.version += 1
        return ticket

    async def append_message(self, ticket_id: str, message: Message) -> Message:
        """Insert a message after the ticket's last one."""
        last = await self._session.scalar(
            select(func.coalesce(func.max(TicketMessageModel.position), 0))
            .where(TicketMessageModel.ticket_id == ticket_id)
        )
        self._session.add(self._message_model(ticket_id, last + 1, message))
        await self._session.flush()
        return message

    async def list_by_status(self, statuses: Iterable[TicketStatus]) -> List[Ticket]:
        """List tickets in any of the given statuses."""
        values = [TicketStatus(s).value for s in statuses]
        stmt = (
            select(TicketModel)
            .where(TicketModel.status.in_(values))
            .order_by(TicketModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [_to_domain(model) for model in result.scalars().all()]

    async def list_by_agent(
        self,
        agent_id: str,
        statuses: Optional[Iterable[TicketStatus]] = None
    ) -> List[Ticket]:
        """List tickets assigned to an agent."""
        stmt = select(TicketModel).where(TicketModel.assigned_agent_id == agent_id)
        if statuses is not None:
            stmt = stmt.where(TicketModel.status.in_([TicketStatus(s).value for s in statuses]))
        stmt = stmt.order_by(TicketModel.created_at).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return [_to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _message_model(ticket_id: str, position: int, message: Message) -> TicketMessageModel:
        return TicketMessageModel(
            ticket_id=ticket_id,
            position=position,
            role=message.role.value,
            content=message.content,
            timestamp=message.timestamp
        )


class InMemoryTicketRepository(ITicketRepository):
    """In-memory ticket repository bound to one unit of work's staged changes."""

    def __init__(self, store: InMemoryStore, staged: StagedChanges):
        self._store = store
        self._staged = staged

    def _current(self, ticket_id: str) -> Optional[Ticket]:
        if ticket_id in self._staged.tickets:
            return self._staged.tickets[ticket_id]
        return self._store.tickets.get(ticket_id)

    def _assemble(self, ticket_id: str) -> Optional[Ticket]:
        current = self._current(ticket_id)
        if current is None:
            return None
        ticket = current.copy()
        ticket.conversation = (
            list(self._store.messages.get(ticket_id, ()))
            + list(self._staged.messages.get(ticket_id, ()))
        )
        return ticket

    @staticmethod
    def _fields_only(ticket: Ticket) -> Ticket:
        stored = ticket.copy()
        stored.conversation = []
        return stored

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        return self._assemble(ticket_id)

    async def create(self, ticket: Ticket) -> Ticket:
        if self._current(ticket.id) is not None:
            raise RepositoryException(f"Ticket {ticket.id} already exists", {"ticket_id": ticket.id})
        self._staged.expect(self._store, "ticket", ticket.id)
        ticket.version = 1
        self._staged.tickets[ticket.id] = self._fields_only(ticket)
        self._staged.messages[ticket.id].extend(ticket.conversation)
        return ticket

    async def update(self, ticket: Ticket) -> Ticket:
        current = self._current(ticket.id)
        if current is None:
            raise TicketNotFoundException(ticket.id)
        if current.version != ticket.version:
            raise ConcurrencyConflictException("Ticket", ticket.id, ticket.version, current.version)
        self._staged.expect(self._store, "ticket", ticket.id)
        ticket.version += 1
        self._staged.tickets[ticket.id] = self._fields_only(ticket)
        return ticket

    async def append_message(self, ticket_id: str, message: Message) -> Message:
        if self._current(ticket_id) is None:
            raise TicketNotFoundException(ticket_id)
        self._staged.messages[ticket_id].append(message)
        return message

    def _all_ids(self) -> List[str]:
        return list(dict.fromkeys(list(self._store.tickets) + list(self._staged.tickets)))

    async def list_by_status(self, statuses: Iterable[TicketStatus]) -> List[Ticket]:
        wanted = {TicketStatus(s) for s in statuses}
        tickets = [self._assemble(ticket_id) for ticket_id in self._all_ids()]
        return sorted(
            (t for t in tickets if t.status in wanted),
            key=lambda t: t.created_at
        )

    async def list_by_agent(
        self,
        agent_id: str,
        statuses: Optional[Iterable[TicketStatus]] = None
    ) -> List[Ticket]:
        wanted = {TicketStatus(s) for s in statuses} if statuses is not None else None
        tickets = [self._assemble(ticket_id) for ticket_id in self._all_ids()]
        return sorted(
            (
                t for t in tickets
                if t.assigned_agent_id == agent_id and (wanted is None or t.status in wanted)
            ),
            key=lambda t: t.created_at
        )
