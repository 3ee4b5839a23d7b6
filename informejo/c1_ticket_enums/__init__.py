"""C1 Ticket Enums - flat vocabularies for users and tickets."""
from informejo.c1_ticket_enums.ticket_enums import (
    UserRole,
    TicketStatus,
    TicketPriority,
    TicketCategory,
    HistoryChangeType,
)
__all__ = ["UserRole", "TicketStatus", "TicketPriority", "TicketCategory", "HistoryChangeType"]
