"""
In-Memory Store
===============

Process-local storage used by tests and by single-process local runs.

Units of work stage their writes in a ``StagedChanges`` and apply them to
the ``InMemoryStore`` in one synchronous step on commit, after checking
that nothing they depend on has been committed by someone else since.
"""

from collections import defaultdict
from typing import Dict, List, Tuple

from supportdesk.assignment.domain import Agent
from supportdesk.lifecycle.domain import Message, Ticket


class InMemoryStore:
    """Committed state shared by every in-memory unit of work."""

    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.messages: Dict[str, List[Message]] = {}
        self.agents: Dict[str, Agent] = {}

    def committed_version(self, kind: str, entity_id: str) -> int:
        table = self.tickets if kind == "ticket" else self.agents
        committed = table.get(entity_id)
        return committed.version if committed is not None else 0


class StagedChanges:
    """Writes of one unit of work that have not been committed yet."""

    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.messages: Dict[str, List[Message]] = defaultdict(list)
        self.agents: Dict[str, Agent] = {}
        # (kind, id) -> committed version the staged write was based on
        self.base_versions: Dict[Tuple[str, str], int] = {}

    def expect(self, store: InMemoryStore, kind: str, entity_id: str) -> None:
        key = (kind, entity_id)
        if key not in self.base_versions:
            self.base_versions[key] = store.committed_version(kind, entity_id)
