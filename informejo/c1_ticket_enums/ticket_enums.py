"""Ticket Enums for Informejo."""

from enum import Enum


class UserRole(str, Enum):
    """Who a user is to the helpdesk."""
    ADMIN = "ADMIN"
    USER = "USER"
    GUEST = "GUEST"


class TicketStatus(str, Enum):
    """Board column a ticket sits in."""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING = "WAITING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    """Ticket urgency."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TicketCategory(str, Enum):
    """What the ticket is about."""
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    NETWORK = "NETWORK"
    ACCESS = "ACCESS"
    OTHER = "OTHER"


class HistoryChangeType(str, Enum):
    """Kinds of audit entries recorded against a ticket."""
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    PRIORITY_CHANGED = "priority_changed"
    ASSIGNED = "assigned"
    COMMENTED = "commented"
    ATTACHMENT_ADDED = "attachment_added"
    FIELD_UPDATED = "field_updated"
