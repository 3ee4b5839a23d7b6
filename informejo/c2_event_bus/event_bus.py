"""Process-local room router for real-time ticket updates."""

import json
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from informejo.c1_event_enums.event_enums import TicketEvent, room_for_ticket
from informejo.c2_event_bus.connection import Connection

logger = logging.getLogger(__name__)


def encode_event(event: Union[TicketEvent, str], payload: Any) -> str:
    """Encode an event envelope once so every member receives the same bytes."""
    name = event.value if isinstance(event, TicketEvent) else str(event)
    return json.dumps({"event": name, "data": payload}, default=str)


class EventBus:
    """Room-scoped publish/subscribe over live connections.

    The registry maps room name -> connection ids, plus the reverse index so a
    disconnect can drop every membership at once. All mutation goes through
    an internal lock; callers never hold it. Delivery is at most once to the
    connections joined at publish time: nothing is buffered for absent
    members and nothing is retried.

    Single process only. Connections attached to another server process are
    not reached.
    """

    def __init__(self, outbox_size: int = 100):
        self.outbox_size = outbox_size
        self._lock = threading.Lock()
        self._connections: Dict[str, Connection] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._memberships: Dict[str, Set[str]] = {}
        self._running = False

    # Lifecycle

    def init(self):
        """Start accepting connections and publishes."""
        with self._lock:
            self._running = True
        logger.info("[EVENT_BUS] Initialized")

    def shutdown(self):
        """Close every connection and clear the registry."""
        with self._lock:
            self._running = False
            connections = list(self._connections.values())
            self._connections.clear()
            self._rooms.clear()
            self._memberships.clear()

        for connection in connections:
            connection.close()
        logger.info(f"[EVENT_BUS] Shut down, closed {len(connections)} connections")

    # Connections

    def open_connection(self, kind: str = "websocket") -> Connection:
        """Create and register a connection bound to the running loop."""
        connection = Connection(kind=kind, outbox_size=self.outbox_size)
        self.register(connection)
        return connection

    def register(self, connection: Connection):
        """Track a new connection; it starts in no rooms."""
        with self._lock:
            self._connections[connection.id] = connection
            self._memberships[connection.id] = set()
        logger.info(f"[EVENT_BUS] Connection {connection.id} registered ({connection.kind})")

    def unregister(self, connection_id: str) -> Set[str]:
        """Forget a connection and remove it from every room it joined.

        Returns:
            The rooms the connection was a member of
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)
            rooms = self._memberships.pop(connection_id, set())
            for room in rooms:
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(connection_id)
                if not members:
                    del self._rooms[room]

        if connection is not None:
            connection.close()
            logger.info(f"[EVENT_BUS] Connection {connection_id} unregistered, left {len(rooms)} rooms")
        return rooms

    # Rooms

    def join(self, connection_id: str, ticket_id: str) -> Optional[str]:
        """Add a connection to a ticket room. Rejoining is a no-op.

        No capability check happens here; the ticket was authorized when the
        client fetched it.

        Returns:
            Room name, or None if the connection is unknown
        """
        room = room_for_ticket(ticket_id)
        with self._lock:
            if connection_id not in self._connections:
                logger.warning(f"[EVENT_BUS] Join from unknown connection {connection_id}")
                return None
            self._rooms.setdefault(room, set()).add(connection_id)
            self._memberships[connection_id].add(room)
        logger.debug(f"[EVENT_BUS] Connection {connection_id} joined {room}")
        return room

    def leave(self, connection_id: str, ticket_id: str) -> Optional[str]:
        """Remove a connection from a ticket room; no-op if not a member."""
        room = room_for_ticket(ticket_id)
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._rooms[room]
            memberships = self._memberships.get(connection_id)
            if memberships is not None:
                memberships.discard(room)
        logger.debug(f"[EVENT_BUS] Connection {connection_id} left {room}")
        return room

    def room_members(self, ticket_id: str) -> Set[str]:
        """Connection ids currently in a ticket room."""
        with self._lock:
            return set(self._rooms.get(room_for_ticket(ticket_id), set()))

    def rooms_for(self, connection_id: str) -> Set[str]:
        """Rooms a connection currently belongs to."""
        with self._lock:
            return set(self._memberships.get(connection_id, set()))

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def stats(self) -> Dict[str, int]:
        """Snapshot used by the health endpoint."""
        with self._lock:
            return {"connections": len(self._connections), "rooms": len(self._rooms)}

    # Publishing

    def publish_to_room(self, ticket_id: str, event: Union[TicketEvent, str], payload: Any) -> int:
        """Deliver an event to every connection in a ticket room.

        Returns:
            Number of connections the message was handed to (queued, or
            scheduled onto the connection's loop for off-loop callers)
        """
        room = room_for_ticket(ticket_id)
        with self._lock:
            targets = [self._connections[cid] for cid in self._rooms.get(room, ()) if cid in self._connections]
        return self._dispatch(targets, event, payload, room)

    def publish_to_all(self, event: Union[TicketEvent, str], payload: Any) -> int:
        """Deliver an event to every open connection regardless of rooms."""
        with self._lock:
            targets = list(self._connections.values())
        return self._dispatch(targets, event, payload, "*")

    def _dispatch(
        self,
        targets: Iterable[Connection],
        event: Union[TicketEvent, str],
        payload: Any,
        scope: str,
    ) -> int:
        if not self._running:
            logger.warning(f"[EVENT_BUS] Not running, dropped {event} for {scope}")
            return 0

        message = encode_event(event, payload)
        delivered = 0
        stale: List[str] = []
        for connection in targets:
            if connection.closed:
                stale.append(connection.id)
                continue
            if connection.deliver(message):
                delivered += 1

        for connection_id in stale:
            self.unregister(connection_id)

        logger.info(f"[EVENT_BUS] Emitted '{getattr(event, 'value', event)}' to {scope} ({delivered} connections)")
        return delivered

    def send_direct(self, connection_id: str, message: Dict[str, Any]) -> bool:
        """Queue a protocol message (ack, error) for one connection."""
        with self._lock:
            connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return connection.deliver(json.dumps(message, default=str))
