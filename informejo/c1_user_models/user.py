"""User database model for Informejo."""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from informejo.c1_database_session import Base


class User(Base):
    """Staff member or guest visitor.

    The magic-link token lives on the user row: at most one live token per
    user, overwritten on every issue.
    """

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(
        String,
        CheckConstraint("role IN ('ADMIN', 'USER', 'GUEST')"),
        default="USER",
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Magic link
    magic_token = Column(String(128), unique=True, index=True)
    magic_token_expires_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    created_tickets = relationship(
        "Ticket", foreign_keys="[Ticket.created_by_id]", back_populates="created_by"
    )
    assigned_tickets = relationship(
        "Ticket", foreign_keys="[Ticket.assigned_to_id]", back_populates="assigned_to"
    )

    __table_args__ = (
        Index("idx_users_role_active", "role", "is_active"),
    )
