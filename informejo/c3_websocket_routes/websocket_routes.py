"""WebSocket and SSE routes for real-time ticket updates."""

import asyncio
import json
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from informejo.c1_event_enums.event_enums import ClientMessageType
from informejo.c2_event_bus.connection import Connection
from informejo.c2_event_bus.event_bus import EventBus

logger = logging.getLogger(__name__)


def _error(detail: str) -> Dict[str, Any]:
    return {"type": "error", "detail": detail}


def handle_client_message(event_bus: EventBus, connection_id: str, raw: str) -> Dict[str, Any]:
    """Apply one client frame (join or leave a ticket room) and build the reply.

    Accepted frames:
        {"type": "join-ticket", "ticket_id": "<id>"}
        {"type": "leave-ticket", "data": "<id>"}

    Returns:
        An ack or error message for the sender
    """
    try:
        message = json.loads(raw)
    except ValueError:
        return _error("Message must be JSON")

    if not isinstance(message, dict):
        return _error("Message must be a JSON object")

    try:
        action = ClientMessageType(message.get("type"))
    except ValueError:
        return _error(f"Unknown message type: {message.get('type')}")

    ticket_id = message.get("ticket_id")
    if ticket_id is None and isinstance(message.get("data"), str):
        ticket_id = message["data"]
    if not isinstance(ticket_id, str) or not ticket_id.strip():
        return _error("ticket_id is required")
    ticket_id = ticket_id.strip()

    if action == ClientMessageType.JOIN_TICKET:
        room = event_bus.join(connection_id, ticket_id)
    else:
        room = event_bus.leave(connection_id, ticket_id)

    if room is None:
        return _error("Connection is not registered")
    return {"type": "ack", "action": action.value, "room": room, "ticket_id": ticket_id}


async def _pump_outbox(websocket: WebSocket, connection: Connection):
    """Forward queued messages to the socket until the connection closes."""
    try:
        while True:
            message = await connection.next_message()
            if message is None:
                break
            await websocket.send_text(message)
    except Exception as e:
        logger.info(f"WebSocket send failed for {connection.id}: {e}")


def create_websocket_router(server_state):
    """Create WebSocket router with server_state dependency.

    Args:
        server_state: ServerState instance with event_bus

    Returns:
        APIRouter: Router with the /ws endpoint and the /api/events SSE stream
    """
    router = APIRouter(tags=["websocket"])

    @router.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for real-time updates."""
        event_bus = server_state.event_bus
        # Registered before the handshake completes so nothing published after connect is missed
        connection = event_bus.open_connection("websocket")
        pump = None

        try:
            await websocket.accept()
            pump = asyncio.create_task(_pump_outbox(websocket, connection))
            while True:
                raw = await websocket.receive_text()
                reply = handle_client_message(event_bus, connection.id, raw)
                event_bus.send_direct(connection.id, reply)
        except WebSocketDisconnect:
            logger.info(f"WebSocket client {connection.id} disconnected")
        finally:
            event_bus.unregister(connection.id)
            if pump is not None:
                pump.cancel()
                try:
                    await pump
                except asyncio.CancelledError:
                    pass

    @router.get("/api/events")
    async def events_endpoint(ticket_id: List[str] = Query(default=[])):
        """Server-Sent Events fallback, joined to the given ticket rooms at connect time."""
        event_bus = server_state.event_bus
        keepalive = server_state.settings.realtime.sse_keepalive_seconds
        connection = event_bus.open_connection("sse")
        rooms = [event_bus.join(connection.id, tid) for tid in ticket_id if tid.strip()]

        async def event_generator():
            """Generate SSE events."""
            try:
                hello = {"type": "connected", "connection_id": connection.id, "rooms": rooms}
                yield f"data: {json.dumps(hello)}\n\n"
                while True:
                    try:
                        message = await asyncio.wait_for(connection.next_message(), timeout=keepalive)
                    except asyncio.TimeoutError:
                        yield ": keepalive\n\n"
                        continue
                    if message is None:
                        break
                    yield f"data: {message}\n\n"
            finally:
                event_bus.unregister(connection.id)

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    return router
