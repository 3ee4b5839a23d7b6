"""C2 Ticket Service - ticket mutations, reads and their side effects."""
from informejo.c2_ticket_service.ticket_service import TicketService
from informejo.c2_ticket_service.history_service import TicketHistoryService
from informejo.c2_ticket_service.post_commit import PostCommitActions
__all__ = ["TicketService", "TicketHistoryService", "PostCommitActions"]
