"""C2 Event Bus - room-scoped real-time fan-out."""
from informejo.c2_event_bus.connection import Connection
from informejo.c2_event_bus.event_bus import EventBus, encode_event
__all__ = ["Connection", "EventBus", "encode_event"]
