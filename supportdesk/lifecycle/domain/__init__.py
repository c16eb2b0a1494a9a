"""
Lifecycle Domain Layer
======================

Domain layer for the ticket lifecycle.

Contains:
- Entities: Ticket, Message, TicketEvent
- Domain Services: ConversationLog, TicketStateMachine

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supportdesk.lifecycle.domain.entities import Message, Ticket, TicketEvent
from supportdesk.lifecycle.domain.conversation import ConversationLog
from supportdesk.lifecycle.domain.state_machine import ALLOWED_TRANSITIONS, TicketStateMachine

__all__ = [
    "Message",
    "Ticket",
    "TicketEvent",
    "ConversationLog",
    "ALLOWED_TRANSITIONS",
    "TicketStateMachine",
]
