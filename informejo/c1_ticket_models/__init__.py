"""Ticket models for Informejo."""

from informejo.c1_ticket_models.ticket import (
    Ticket,
    TicketComment,
    TicketAttachment,
    TicketHistory,
)

__all__ = ["Ticket", "TicketComment", "TicketAttachment", "TicketHistory"]
