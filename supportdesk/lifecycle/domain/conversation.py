"""
Conversation Log
================

Append-only message history of a ticket.
"""

from datetime import datetime

from supportdesk.config import MessageRole, coerce_enum
from supportdesk.core import ValidationException
from supportdesk.lifecycle.domain.entities import Message, Ticket


class ConversationLog:
    """
    Appends messages to a ticket's conversation.

    There is no edit or delete operation. Timestamps never go
    backwards: a message stamped earlier than the last one takes the last
    one's timestamp, so insertion order and time order always agree.
    """

    @staticmethod
    def append(ticket: Ticket, role: MessageRole, content: str, now: datetime) -> Message:
        """
        Append a message to the end of the conversation.

        Raises:
            ValidationException: If content is empty or the role is unknown
        """
        role = coerce_enum(MessageRole, role, "role")
        if content is None or not str(content).strip():
            raise ValidationException("Message content must not be empty", {"ticket_id": ticket.id})

        timestamp = now
        if ticket.conversation and ticket.conversation[-1].timestamp > now:
            timestamp = ticket.conversation[-1].timestamp

        message = Message(role=role, content=str(content), timestamp=timestamp)
        ticket.conversation.append(message)
        return message
