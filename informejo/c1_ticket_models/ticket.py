"""Ticket-related models for Informejo."""

from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, CheckConstraint, JSON, Boolean
from sqlalchemy.orm import relationship

from informejo.c1_database_session.base import Base


class Ticket(Base):
    """Support ticket."""

    __tablename__ = "tickets"

    id = Column(String, primary_key=True)  # uuid4 with dashes
    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)
    assigned_to_id = Column(String, ForeignKey("users.id"))

    # Core Fields
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(
        String(20),
        CheckConstraint("category IN ('HARDWARE', 'SOFTWARE', 'NETWORK', 'ACCESS', 'OTHER')"),
        nullable=False,
    )
    priority = Column(
        String(20),
        CheckConstraint("priority IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL')"),
        nullable=False,
    )
    status = Column(
        String(20),
        CheckConstraint("status IN ('OPEN', 'IN_PROGRESS', 'WAITING', 'RESOLVED', 'CLOSED')"),
        nullable=False,
    )

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    resolved_at = Column(DateTime)  # Set when moved to RESOLVED or CLOSED

    # Relationships
    created_by = relationship(
        "User", foreign_keys=[created_by_id], back_populates="created_tickets"
    )
    assigned_to = relationship(
        "User", foreign_keys=[assigned_to_id], back_populates="assigned_tickets"
    )
    comments = relationship(
        "TicketComment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketComment.created_at",
    )
    attachments = relationship(
        "TicketAttachment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketAttachment.created_at.desc()",
    )
    history = relationship(
        "TicketHistory",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketHistory.changed_at",
    )


class TicketComment(Base):
    """Comments on tickets; internal ones are visible to admins only."""

    __tablename__ = "ticket_comments"

    id = Column(String, primary_key=True)
    ticket_id = Column(String, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)

    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    ticket = relationship("Ticket", back_populates="comments")
    user = relationship("User")


class TicketAttachment(Base):
    """Files uploaded against a ticket."""

    __tablename__ = "ticket_attachments"

    id = Column(String, primary_key=True)
    ticket_id = Column(String, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    uploaded_by_id = Column(String, ForeignKey("users.id"), nullable=False)

    file_name = Column(String(255), nullable=False)  # Name as uploaded
    file_path = Column(Text, nullable=False)  # Public path: /uploads/<ticket>/<stored>
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    ticket = relationship("Ticket", back_populates="attachments")
    uploaded_by = relationship("User")


class TicketHistory(Base):
    """Track changes to tickets for audit trail."""

    __tablename__ = "ticket_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticket_id = Column(String, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)

    # Change Information
    change_type = Column(String(50), nullable=False)
    field_name = Column(String(100))
    old_value = Column(Text)
    new_value = Column(Text)

    # Context
    change_description = Column(Text)
    change_metadata = Column(JSON)

    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    ticket = relationship("Ticket", back_populates="history")
    user = relationship("User")
