"""C2 Magic Link Service - passwordless ticket access."""
from informejo.c2_magic_link_service.magic_link_service import (
    MagicLinkService,
    MagicLink,
    TicketAccess,
    normalize_ticket_id,
)
__all__ = ["MagicLinkService", "MagicLink", "TicketAccess", "normalize_ticket_id"]
