"""
Lifecycle Infrastructure Models
================================

SQLAlchemy ORM models for the lifecycle module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supportdesk.infrastructure.database import Base
from supportdesk.config import TicketCategory, TicketPriority, TicketStatus


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table. Rows are never deleted.
    """
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Ticket content
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)

    # Routing attributes
    category: Mapped[TicketCategory] = mapped_column(String(50), nullable=False, default=TicketCategory.GENERAL)
    priority: Mapped[TicketPriority] = mapped_column(String(50), nullable=False, default=TicketPriority.MEDIUM)
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.OPEN, index=True)
    assigned_agent_id: Mapped[Optional[str]] = mapped_column(String(64), ForeignKey("agents.id"), nullable=True, index=True)

    # SLA tracking
    sla_due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    sla_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Reopen tracking
    reopen_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reopened_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Triage
    needs_manual_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    classification_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    messages: Mapped[List["TicketMessageModel"]] = relationship(
        back_populates="ticket",
        order_by="TicketMessageModel.position",
        lazy="selectin",
    )


class TicketMessageModel(Base):
    """
    Database model for a conversation message.

    Maps to the 'ticket_messages' table. Append-only.
    """
    __tablename__ = "ticket_messages"
    __table_args__ = (
        UniqueConstraint("ticket_id", "position", name="uq_ticket_messages_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[str] = mapped_column(String(64), ForeignKey("tickets.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ticket: Mapped[TicketModel] = relationship(back_populates="messages")
