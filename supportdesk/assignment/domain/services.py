"""
Assignment Domain Services
==========================

Stateless agent selection.
"""

from typing import Iterable, List, Tuple

from supportdesk.assignment.domain.entities import Agent
from supportdesk.config import TicketCategory
from supportdesk.core import NoEligibleAgentException


class AgentSelector:
    """
    Picks the agent a ticket should be routed to.

    Selection is deterministic for a given candidate set, independent of
    the order candidates are supplied in:

    1. Only active agents under capacity are considered.
    2. Agents qualified for the ticket's category win over the rest.
    3. Within each group the least loaded agent wins, ties broken by id.
    """

    @staticmethod
    def _sort_key(agent: Agent) -> Tuple[int, str]:
        return agent.current_load, agent.id

    def rank(
        self,
        candidates: Iterable[Agent],
        category: TicketCategory,
        exclude: Iterable[str] = ()
    ) -> List[Agent]:
        """
        Order every eligible candidate by preference.

        Args:
            candidates: Agents to choose from
            category: Ticket category
            exclude: Agent ids that must not be chosen

        Returns:
            Category matches first, then the rest, each by (load, id)
        """
        excluded = set(exclude)
        eligible = [a for a in candidates if a.is_eligible and a.id not in excluded]

        matching = sorted((a for a in eligible if a.handles(category)), key=self._sort_key)
        others = sorted((a for a in eligible if not a.handles(category)), key=self._sort_key)
        return matching + others

    def select_agent(
        self,
        candidates: Iterable[Agent],
        category: TicketCategory,
        exclude: Iterable[str] = ()
    ) -> Agent:
        """
        Return the preferred agent for a ticket.

        Raises:
            NoEligibleAgentException: If no candidate is active and under capacity
        """
        ranked = self.rank(candidates, category, exclude)
        if not ranked:
            raise NoEligibleAgentException(TicketCategory(category).value)
        return ranked[0]
