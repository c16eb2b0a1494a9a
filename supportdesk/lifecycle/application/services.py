"""
Lifecycle Application Services
===============================

Orchestrates every ticket mutation.

Each mutation follows the same shape:

1. take the ticket's lock (new tickets need none),
2. load the ticket and the agent directory,
3. apply the change to a working copy, collecting new messages and events,
4. lock every agent whose load changes (sorted), then commit ticket,
   messages and load changes in one unit of work,
5. publish the events in the background.

Locks are always taken ticket first, then agents, and agent locks are
never held while waiting for a ticket lock.
"""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from supportdesk.assignment.application import CapacityTracker
from supportdesk.assignment.domain import Agent, AgentSelector, AgentWorkload
from supportdesk.config import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    NON_TERMINAL_STATUSES,
    MessageRole,
    TicketCategory,
    TicketEventType,
    TicketPriority,
    TicketStatus,
    UpdateActor,
    coerce_enum,
)
from supportdesk.core import (
    AgentInactiveException,
    AgentNotFoundException,
    ApplicationException,
    CapacityExceededException,
    ConcurrencyConflictException,
    InvalidStatusTransitionException,
    NoEligibleAgentException,
    TicketClosedException,
    TicketNotFoundException,
    ValidationException,
)
from supportdesk.lifecycle.application.events import EventDispatcher
from supportdesk.lifecycle.domain import (
    ConversationLog,
    Message,
    Ticket,
    TicketEvent,
    TicketStateMachine,
)
from supportdesk.shared.application import UnitOfWorkFactory
from supportdesk.shared.infrastructure.locks import KeyedLock
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.sla.application import IBreachRecorder
from supportdesk.sla.domain import SLAPolicy

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket, with its conversation, by ID."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Store a new ticket together with its initial conversation."""

    @abstractmethod
    async def update(self, ticket: Ticket) -> Ticket:
        """
        Save ticket fields (not the conversation).

        Raises:
            ConcurrencyConflictException: If ``ticket.version`` is stale
        """

    @abstractmethod
    async def append_message(self, ticket_id: str, message: Message) -> Message:
        """Add one message to the end of a ticket's conversation."""

    @abstractmethod
    async def list_by_status(self, statuses: Iterable[TicketStatus]) -> List[Ticket]:
        """List tickets in any of the given statuses."""

    @abstractmethod
    async def list_by_agent(
        self,
        agent_id: str,
        statuses: Optional[Iterable[TicketStatus]] = None
    ) -> List[Ticket]:
        """List tickets assigned to an agent, optionally filtered by status."""


# ========== Results ==========

@dataclass
class BulkItemResult:
    """Outcome of one ticket in a bulk update."""
    ticket_id: str
    success: bool
    ticket: Optional[Ticket] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class AgentStatusChange:
    """Outcome of activating or deactivating an agent."""
    agent: Agent
    reassigned: List[str] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class _TicketDraft:
    """Working copy of a ticket plus everything the change produced."""

    def __init__(self, ticket: Ticket, now: datetime, original: Optional[Ticket] = None):
        self.ticket = ticket
        self.original = original
        self.now = now
        self.new_messages: List[Message] = []
        self.events: List[TicketEvent] = []
        # Agent picked by routing rather than by the caller; may be retried
        self.routed_agent_id: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.original is None or self.ticket != self.original

    def say(self, role: MessageRole, content: str) -> Message:
        message = ConversationLog.append(self.ticket, role, content, self.now)
        self.new_messages.append(message)
        return message

    def note(self, content: str) -> Message:
        return self.say(MessageRole.SYSTEM, content)

    def emit(self, event_type: TicketEventType, **payload) -> None:
        self.events.append(TicketEvent(event_type, self.ticket.id, self.now, payload))


Mutation = Callable[[_TicketDraft, Dict[str, Agent], Set[str]], None]


# ========== Application Services ==========

class TicketLifecycleService(IBreachRecorder):
    """
    Service for everything that changes a ticket.

    The only entry point for status, priority, category and assignee
    changes, whether they come from an agent, an admin or the AI gateway.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        capacity: CapacityTracker,
        dispatcher: EventDispatcher,
        selector: Optional[AgentSelector] = None,
        policy: Optional[SLAPolicy] = None,
        ticket_locks: Optional[KeyedLock] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._uow_factory = uow_factory
        self._capacity = capacity
        self._dispatcher = dispatcher
        self._selector = selector or AgentSelector()
        self._policy = policy or SLAPolicy()
        self._ticket_locks = ticket_locks or KeyedLock("ticket")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def policy(self) -> SLAPolicy:
        return self._policy

    # ----- reads -----

    async def get_ticket(self, ticket_id: str) -> Ticket:
        """
        Get a ticket, recording an SLA breach first if it has become overdue.

        Raises:
            TicketNotFoundException: Unknown ticket
        """
        ticket = await self._load(ticket_id)
        if ticket.is_overdue(self._clock()):
            await self.record_sla_breach(ticket_id)
            ticket = await self._load(ticket_id)
        return ticket

    async def list_tickets(
        self,
        status: Optional[TicketStatus] = None,
        agent_id: Optional[str] = None
    ) -> List[Ticket]:
        """List tickets, newest first, optionally by status and/or assignee."""
        statuses = [coerce_enum(TicketStatus, status, "status")] if status else list(TicketStatus)
        async with self._uow_factory() as uow:
            if agent_id:
                tickets = await uow.tickets.list_by_agent(agent_id, statuses)
            else:
                tickets = await uow.tickets.list_by_status(statuses)
        return sorted(tickets, key=lambda t: (t.created_at, t.id), reverse=True)

    async def agent_workloads(self) -> List[AgentWorkload]:
        """Each agent's load counter next to a recount of its open tickets."""
        async with self._uow_factory() as uow:
            agents = await uow.agents.list_all()
            open_tickets = await uow.tickets.list_by_status(NON_TERMINAL_STATUSES)

        counts = Counter(t.assigned_agent_id for t in open_tickets if t.assigned_agent_id)
        workloads = [
            AgentWorkload(
                agent_id=agent.id,
                name=agent.name,
                is_active=agent.is_active,
                current_load=agent.current_load,
                max_load=agent.max_load,
                open_tickets=counts.get(agent.id, 0)
            )
            for agent in sorted(agents, key=lambda a: a.id)
        ]

        drifted = [w.agent_id for w in workloads if not w.consistent]
        if drifted:
            logger.warning("Agent load counters out of sync", extra={"agent_ids": drifted})
        return workloads

    # ----- creation -----

    async def create_ticket(
        self,
        subject: str,
        description: str,
        customer_email: str,
        category=DEFAULT_CATEGORY,
        priority=DEFAULT_PRIORITY,
        needs_manual_review: bool = False,
        classification_confidence: Optional[float] = None
    ) -> Ticket:
        """
        Open a ticket and route it.

        The description becomes the first customer message. When no agent
        is eligible the ticket is still created, unassigned and flagged for
        manual review.

        Raises:
            ValidationException: Empty fields or unknown category/priority
        """
        category = coerce_enum(TicketCategory, category, "category")
        priority = coerce_enum(TicketPriority, priority, "priority")
        for field_name, value in (
            ("subject", subject),
            ("description", description),
            ("customer_email", customer_email),
        ):
            if value is None or not str(value).strip():
                raise ValidationException(f"{field_name} must not be empty", {"field": field_name})

        created_at = self._clock()
        template = Ticket.open_new(
            subject=subject.strip(),
            description=description,
            customer_email=customer_email.strip(),
            category=category,
            priority=priority,
            sla_due_at=self._policy.due_date(priority, created_at),
            created_at=created_at
        )
        template.needs_manual_review = needs_manual_review
        template.classification_confidence = classification_confidence
        ConversationLog.append(template, MessageRole.CUSTOMER, description, created_at)

        async def build(excluded: Set[str]) -> _TicketDraft:
            agents = await self._agent_directory()
            draft = _TicketDraft(template.copy(), created_at)
            draft.emit(
                TicketEventType.TICKET_CREATED,
                category=category.value,
                priority=priority.value,
                customer_email=template.customer_email,
                sla_due_at=template.sla_due_at.isoformat()
            )
            self._route(draft, agents, excluded)
            return draft

        draft = await self._commit_with_routing(build)
        ticket = draft.ticket

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "category": category.value,
                "priority": priority.value,
                "agent_id": ticket.assigned_agent_id,
                "needs_manual_review": ticket.needs_manual_review
            }
        )
        return ticket

    # ----- conversation -----

    async def add_message(self, ticket_id: str, role, content: str) -> Ticket:
        """
        Append a message and apply the lifecycle rules it triggers.

        A customer reply reopens a resolved ticket and re-acquires capacity
        for it; an agent reply records the first response and starts work
        on an open ticket.

        Raises:
            TicketClosedException: The ticket is closed
            ValidationException: Empty content or unknown role
        """
        role = coerce_enum(MessageRole, role, "role")

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if role == MessageRole.CUSTOMER:
                reopened = TicketStateMachine.on_customer_message(ticket, draft.now)
                draft.say(role, content)
                if reopened:
                    draft.note("Ticket reopened due to customer reply")
                    draft.emit(
                        TicketEventType.STATUS_CHANGED,
                        from_status=TicketStatus.RESOLVED.value,
                        to_status=TicketStatus.OPEN.value,
                        actor=MessageRole.CUSTOMER.value,
                        reopen_count=ticket.reopen_count
                    )
                    self._reacquire(draft, agents, excluded)
            elif role == MessageRole.AGENT:
                previous = TicketStateMachine.on_agent_message(ticket, draft.now)
                draft.say(role, content)
                if previous is not None:
                    draft.emit(
                        TicketEventType.STATUS_CHANGED,
                        from_status=previous.value,
                        to_status=ticket.status.value,
                        actor=MessageRole.AGENT.value
                    )
            else:
                if ticket.status == TicketStatus.CLOSED:
                    raise TicketClosedException(ticket.id)
                draft.say(role, content)

            ticket.updated_at = draft.now
            draft.emit(TicketEventType.MESSAGE_ADDED, role=role.value)

        draft = await self._change(ticket_id, mutate)
        logger.info(
            "Message added",
            extra={"ticket_id": ticket_id, "role": role.value, "status": draft.ticket.status.value}
        )
        return draft.ticket

    # ----- updates -----

    async def update_ticket(
        self,
        ticket_id: str,
        status=None,
        priority=None,
        category=None,
        assigned_agent_id: Optional[str] = None,
        closure_reason: Optional[str] = None,
        actor=UpdateActor.AGENT,
        remark: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Ticket:
        """
        Apply a status/priority/category/assignee change atomically.

        Args:
            ticket_id: Ticket to change
            status: New status, checked against the allowed transitions
            priority: New priority; restarts the SLA clock on open tickets
            category: New category
            assigned_agent_id: New assignee
            closure_reason: Required when ``status`` is closed
            actor: Who asked for the change
            remark: Free text recorded with the change
            expected_version: Reject the update if the ticket has moved on

        Raises:
            ValidationException: Unknown values or nothing to change
            InvalidStatusTransitionException: Disallowed status change
            TicketClosedException: Non-status change on a closed ticket
            CapacityExceededException: New assignee is full
            ConcurrencyConflictException: ``expected_version`` is stale
        """
        status = coerce_enum(TicketStatus, status, "status") if status is not None else None
        priority = coerce_enum(TicketPriority, priority, "priority") if priority is not None else None
        category = coerce_enum(TicketCategory, category, "category") if category is not None else None
        actor = coerce_enum(UpdateActor, actor, "actor")

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if ticket.status == TicketStatus.CLOSED:
                if status is not None:
                    raise InvalidStatusTransitionException(
                        ticket.id, ticket.status.value, status.value,
                        "closed tickets cannot change status"
                    )
                raise TicketClosedException(ticket.id)

            changes = []
            if assigned_agent_id is not None and assigned_agent_id != ticket.assigned_agent_id:
                changes.append(self._assign_to(draft, agents, assigned_agent_id))

            if category is not None and category != ticket.category:
                changes.append(f"category {ticket.category.value} -> {category.value}")
                ticket.category = category

            if priority is not None and priority != ticket.priority:
                changes.append(f"priority {ticket.priority.value} -> {priority.value}")
                ticket.priority = priority
                if not ticket.is_terminal:
                    ticket.sla_due_at = self._policy.due_date(priority, draft.now)

            if status is not None:
                previous = TicketStateMachine.transition(ticket, status, draft.now, closure_reason)
                changes.append(f"status {previous.value} -> {status.value}")
                draft.emit(
                    TicketEventType.STATUS_CHANGED,
                    from_status=previous.value,
                    to_status=status.value,
                    actor=actor.value,
                    closure_reason=ticket.closure_reason if status == TicketStatus.CLOSED else None
                )

            if not changes:
                raise ValidationException("No valid changes provided", {"ticket_id": ticket.id})

            ticket.updated_at = draft.now
            text = f"{actor.label} updated: " + ", ".join(changes)
            if remark and remark.strip():
                text += f"\nRemark: {remark.strip()}"
            draft.note(text)

        draft = await self._change(ticket_id, mutate, expected_version=expected_version)
        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": ticket_id,
                "actor": actor.value,
                "status": draft.ticket.status.value,
                "priority": draft.ticket.priority.value,
                "agent_id": draft.ticket.assigned_agent_id
            }
        )
        return draft.ticket

    async def reassign(
        self,
        ticket_id: str,
        new_agent_id: str,
        expected_version: Optional[int] = None,
        actor=UpdateActor.ADMIN,
        remark: Optional[str] = None
    ) -> Ticket:
        """
        Move a ticket to another agent.

        Old agent released and new agent charged in one step; reassigning
        to the current assignee changes nothing. The SLA is untouched.

        Raises:
            AgentNotFoundException: Unknown target agent
            AgentInactiveException: Target agent is deactivated
            CapacityExceededException: Target agent is full
            InvalidStatusTransitionException: Ticket is resolved or closed
            ConcurrencyConflictException: ``expected_version`` is stale
        """
        actor = coerce_enum(UpdateActor, actor, "actor")

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if ticket.assigned_agent_id == new_agent_id:
                return
            change = self._assign_to(draft, agents, new_agent_id)
            ticket.updated_at = draft.now
            text = f"{actor.label} reassigned ticket: {change}"
            if remark and remark.strip():
                text += f"\nRemark: {remark.strip()}"
            draft.note(text)

        draft = await self._change(ticket_id, mutate, expected_version=expected_version)
        if draft.original.assigned_agent_id != draft.ticket.assigned_agent_id:
            logger.info(
                "Ticket reassigned",
                extra={
                    "ticket_id": ticket_id,
                    "from_agent_id": draft.original.assigned_agent_id,
                    "to_agent_id": new_agent_id
                }
            )
        return draft.ticket

    async def bulk_update(
        self,
        ticket_ids: Iterable[str],
        status=None,
        priority=None,
        category=None,
        assigned_agent_id: Optional[str] = None,
        closure_reason: Optional[str] = None,
        actor=UpdateActor.ADMIN,
        remark: Optional[str] = None
    ) -> List[BulkItemResult]:
        """
        Apply the same update to many tickets.

        Each ticket is updated on its own; one failure does not undo or
        stop the others.
        """
        results = []
        for ticket_id in dict.fromkeys(ticket_ids):
            try:
                ticket = await self.update_ticket(
                    ticket_id,
                    status=status,
                    priority=priority,
                    category=category,
                    assigned_agent_id=assigned_agent_id,
                    closure_reason=closure_reason,
                    actor=actor,
                    remark=remark
                )
                results.append(BulkItemResult(ticket_id=ticket_id, success=True, ticket=ticket))
            except ApplicationException as e:
                results.append(BulkItemResult(
                    ticket_id=ticket_id,
                    success=False,
                    error=e.message,
                    error_type=type(e).__name__
                ))

        logger.info(
            "Bulk update finished",
            extra={
                "total": len(results),
                "succeeded": sum(1 for r in results if r.success)
            }
        )
        return results

    # ----- manual review -----

    async def flag_manual_review(self, ticket_id: str, reason: str) -> Ticket:
        """Mark a ticket as needing a human look."""

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if ticket.status == TicketStatus.CLOSED:
                raise TicketClosedException(ticket.id)
            # An already flagged ticket still records the new reason
            ticket.needs_manual_review = True
            ticket.updated_at = draft.now
            draft.note(f"Flagged for manual review: {reason}")

        draft = await self._change(ticket_id, mutate)
        return draft.ticket

    async def clear_manual_review(self, ticket_id: str, agent_id: Optional[str] = None) -> Ticket:
        """Record that an agent has reviewed the ticket."""

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if ticket.status == TicketStatus.CLOSED:
                raise TicketClosedException(ticket.id)
            if not ticket.needs_manual_review:
                return
            ticket.needs_manual_review = False
            ticket.updated_at = draft.now
            reviewer = agents.get(agent_id).name if agent_id in agents else "an agent"
            draft.note(f"Manual review completed by {reviewer}")

        draft = await self._change(ticket_id, mutate)
        return draft.ticket

    # ----- agents -----

    async def set_agent_active(self, agent_id: str, is_active: bool) -> AgentStatusChange:
        """
        Activate or deactivate an agent.

        Deactivation moves each of the agent's open tickets to another
        eligible agent, or leaves it unassigned and flagged when nobody is
        available, releasing the agent's load either way.

        Raises:
            AgentNotFoundException: Unknown agent
        """
        async with self._capacity.hold(agent_id):
            async with self._uow_factory() as uow:
                agent = await uow.agents.get_by_id(agent_id)
                if agent is None:
                    raise AgentNotFoundException(agent_id)
                if agent.is_active != is_active:
                    agent.is_active = is_active
                    agent.updated_at = self._clock()
                    await uow.agents.update(agent)

        result = AgentStatusChange(agent=agent)
        logger.info("Agent active flag changed", extra={"agent_id": agent_id, "is_active": is_active})
        if is_active:
            return result

        async with self._uow_factory() as uow:
            tickets = await uow.tickets.list_by_agent(agent_id, NON_TERMINAL_STATUSES)

        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            ticket = draft.ticket
            if ticket.assigned_agent_id != agent_id or ticket.is_terminal:
                return
            ticket.updated_at = draft.now
            self._route(draft, agents, excluded | {agent_id}, reason="previous agent deactivated")

        for ticket in sorted(tickets, key=lambda t: t.created_at):
            try:
                draft = await self._change(ticket.id, mutate)
            except ApplicationException as e:
                result.failed.append(ticket.id)
                logger.error(
                    "Could not move ticket off deactivated agent",
                    extra={"ticket_id": ticket.id, "agent_id": agent_id, "error": e.message}
                )
                continue
            if not draft.changed:
                continue
            if draft.ticket.assigned_agent_id is None:
                result.unassigned.append(ticket.id)
            else:
                result.reassigned.append(ticket.id)

        async with self._uow_factory() as uow:
            result.agent = await uow.agents.get_by_id(agent_id)

        logger.info(
            "Agent deactivated",
            extra={
                "agent_id": agent_id,
                "reassigned": len(result.reassigned),
                "unassigned": len(result.unassigned),
                "failed": len(result.failed)
            }
        )
        return result

    # ----- SLA (IBreachRecorder) -----

    async def list_breach_candidates(self, now: datetime) -> List[Ticket]:
        async with self._uow_factory() as uow:
            tickets = await uow.tickets.list_by_status(NON_TERMINAL_STATUSES)
        return [t for t in tickets if t.is_overdue(now)]

    async def record_sla_breach(self, ticket_id: str, now: Optional[datetime] = None) -> bool:
        def mutate(draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
            return None

        draft = await self._change(ticket_id, mutate, now=now)
        return draft.ticket.sla_breached and not draft.original.sla_breached

    # ----- internals -----

    async def _load(self, ticket_id: str) -> Ticket:
        async with self._uow_factory() as uow:
            ticket = await uow.tickets.get_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundException(ticket_id)
        return ticket

    async def _agent_directory(self) -> Dict[str, Agent]:
        async with self._uow_factory() as uow:
            agents = await uow.agents.list_all()
        return {agent.id: agent for agent in agents}

    async def _change(
        self,
        ticket_id: str,
        mutate: Mutation,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> _TicketDraft:
        async with self._ticket_locks.acquire(ticket_id):

            async def build(excluded: Set[str]) -> _TicketDraft:
                async with self._uow_factory() as uow:
                    current = await uow.tickets.get_by_id(ticket_id)
                    if current is None:
                        raise TicketNotFoundException(ticket_id)
                    agents = {agent.id: agent for agent in await uow.agents.list_all()}

                if expected_version is not None and current.version != expected_version:
                    raise ConcurrencyConflictException(
                        "Ticket", ticket_id, expected_version, current.version
                    )

                draft = _TicketDraft(current.copy(), now or self._clock(), original=current)
                self._refresh_breach(draft)
                mutate(draft, agents, excluded)
                self._refresh_breach(draft)
                return draft

            return await self._commit_with_routing(build)

    async def _commit_with_routing(
        self,
        build: Callable[[Set[str]], Awaitable[_TicketDraft]]
    ) -> _TicketDraft:
        """
        Persist a draft, re-routing if the agent routing picked filled up.

        An agent chosen by routing can become full or inactive between the
        selection and the commit; it is then excluded and the change is
        rebuilt. Agents named explicitly by the caller are never retried.
        """
        excluded: Set[str] = set()
        while True:
            draft = await build(excluded)
            if not draft.changed:
                return draft
            try:
                await self._persist(draft)
            except (CapacityExceededException, AgentInactiveException) as e:
                if draft.routed_agent_id is None or e.agent_id != draft.routed_agent_id:
                    raise
                logger.info(
                    "Routed agent unavailable at commit, re-routing",
                    extra={"ticket_id": draft.ticket.id, "agent_id": e.agent_id}
                )
                excluded.add(e.agent_id)
                continue

            self._dispatcher.dispatch(draft.events)
            return draft

    async def _persist(self, draft: _TicketDraft) -> None:
        deltas = self._capacity_deltas(draft.original, draft.ticket)
        async with self._capacity.hold(*deltas):
            async with self._uow_factory() as uow:
                for agent_id in sorted(deltas):
                    if deltas[agent_id] < 0:
                        await self._capacity.apply_decrement(uow.agents, agent_id)
                    else:
                        await self._capacity.apply_increment(
                            uow.agents, agent_id, require_active=True
                        )

                if draft.original is None:
                    await uow.tickets.create(draft.ticket)
                else:
                    await uow.tickets.update(draft.ticket)
                    for message in draft.new_messages:
                        await uow.tickets.append_message(draft.ticket.id, message)

    @staticmethod
    def _capacity_deltas(before: Optional[Ticket], after: Ticket) -> Dict[str, int]:
        """Net load change per agent between two versions of a ticket."""
        deltas: Dict[str, int] = defaultdict(int)
        if before is not None and before.holds_capacity:
            deltas[before.assigned_agent_id] -= 1
        if after.holds_capacity:
            deltas[after.assigned_agent_id] += 1
        return {agent_id: delta for agent_id, delta in deltas.items() if delta}

    def _refresh_breach(self, draft: _TicketDraft) -> None:
        ticket = draft.ticket
        if not ticket.is_overdue(draft.now):
            return
        ticket.sla_breached = True
        ticket.updated_at = draft.now
        draft.note(f"SLA breached: response was due by {ticket.sla_due_at.isoformat()}")
        draft.emit(
            TicketEventType.SLA_BREACHED,
            priority=ticket.priority.value,
            sla_due_at=ticket.sla_due_at.isoformat(),
            agent_id=ticket.assigned_agent_id
        )
        logger.warning(
            "SLA breached",
            extra={
                "ticket_id": ticket.id,
                "priority": ticket.priority.value,
                "sla_due_at": ticket.sla_due_at.isoformat()
            }
        )

    def _route(
        self,
        draft: _TicketDraft,
        agents: Dict[str, Agent],
        excluded: Set[str],
        reason: Optional[str] = None
    ) -> Optional[str]:
        """Assign the ticket to the preferred eligible agent, or unassign and flag it."""
        ticket = draft.ticket
        previous = ticket.assigned_agent_id
        try:
            agent = self._selector.select_agent(agents.values(), ticket.category, exclude=excluded)
        except NoEligibleAgentException:
            ticket.assigned_agent_id = None
            ticket.needs_manual_review = True
            draft.routed_agent_id = None
            draft.note("No agent available; ticket queued for manual review")
            logger.warning(
                "No eligible agent for ticket",
                extra={"ticket_id": ticket.id, "category": ticket.category.value}
            )
            return None

        ticket.assigned_agent_id = agent.id
        draft.routed_agent_id = agent.id
        if previous is not None and previous != agent.id:
            text = f"Ticket reassigned from {self._agent_name(agents, previous)} to {agent.name}"
        else:
            text = f"Ticket assigned to {agent.name}"
        if reason:
            text += f" ({reason})"
        draft.note(text)
        draft.emit(
            TicketEventType.AGENT_ASSIGNED,
            agent_id=agent.id,
            previous_agent_id=previous
        )
        return agent.id

    def _reacquire(self, draft: _TicketDraft, agents: Dict[str, Agent], excluded: Set[str]) -> None:
        """Charge a reopened ticket to its assignee again, re-routing if it cannot take it."""
        current = draft.ticket.assigned_agent_id
        agent = agents.get(current) if current else None
        if agent is not None and agent.is_eligible and current not in excluded:
            draft.routed_agent_id = current
            return
        reason = "previous agent unavailable" if current else None
        self._route(draft, agents, excluded, reason=reason)

    def _assign_to(self, draft: _TicketDraft, agents: Dict[str, Agent], agent_id: str) -> str:
        """Explicit assignment by a caller; capacity is checked at commit."""
        ticket = draft.ticket
        if ticket.is_terminal:
            raise InvalidStatusTransitionException(
                ticket.id, ticket.status.value, ticket.status.value,
                "resolved and closed tickets cannot be reassigned"
            )
        agent = agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundException(agent_id)

        previous = ticket.assigned_agent_id
        ticket.assigned_agent_id = agent_id
        draft.emit(TicketEventType.AGENT_ASSIGNED, agent_id=agent_id, previous_agent_id=previous)
        previous_name = self._agent_name(agents, previous) if previous else "unassigned"
        return f"assignee {previous_name} -> {agent.name}"

    @staticmethod
    def _agent_name(agents: Dict[str, Agent], agent_id: str) -> str:
        agent = agents.get(agent_id)
        return agent.name if agent is not None else agent_id
