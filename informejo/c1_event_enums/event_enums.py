"""Event Enums for Informejo real-time updates."""

from enum import Enum

ROOM_PREFIX = "ticket:"


class TicketEvent(str, Enum):
    """Server-to-client event names."""
    TICKET_CREATED = "ticket:created"
    TICKET_UPDATED = "ticket:updated"
    TICKET_DELETED = "ticket:deleted"
    TICKET_ASSIGNED = "ticket:assigned"
    TICKET_STATUS_CHANGED = "ticket:status-changed"
    COMMENT_ADDED = "comment:added"
    ATTACHMENT_ADDED = "attachment:added"


class ClientMessageType(str, Enum):
    """Client-to-server message types."""
    JOIN_TICKET = "join-ticket"
    LEAVE_TICKET = "leave-ticket"


def room_for_ticket(ticket_id: str) -> str:
    """Room name for a ticket."""
    return f"{ROOM_PREFIX}{ticket_id}"
