"""C1 Event Enums - real-time event vocabulary."""
from informejo.c1_event_enums.event_enums import TicketEvent, ClientMessageType, room_for_ticket
__all__ = ["TicketEvent", "ClientMessageType", "room_for_ticket"]
