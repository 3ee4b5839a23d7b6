"""Live client connections fed by the event bus."""

import asyncio
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

# Wakes the outbox reader so it can stop after close()
_CLOSED = None


class Connection:
    """One connected client (WebSocket or SSE stream).

    Messages are pre-encoded JSON strings placed on a bounded FIFO outbox.
    deliver() never awaits and may be called from any thread; off-loop calls
    are marshalled onto the loop that created the connection.
    """

    def __init__(
        self,
        kind: str = "websocket",
        outbox_size: int = 100,
        connection_id: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.id = connection_id or f"conn-{uuid.uuid4()}"
        self.kind = kind
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._loop = loop or asyncio.get_running_loop()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, message: str) -> bool:
        """Queue an encoded message for the client.

        Off-loop calls only schedule the put, so True there means the outbox
        had room when the message was handed over; a put that still overflows
        is logged and dropped on the loop.

        Returns:
            False if the connection is closed or its outbox is full
        """
        if self._closed:
            return False

        if self._on_own_loop():
            return self._put(message)

        if self.outbox.full():
            logger.warning(f"Outbox full for connection {self.id}, skipping event")
            return False
        try:
            self._loop.call_soon_threadsafe(self._put, message)
        except RuntimeError:
            # Loop already closed
            logger.warning(f"Connection {self.id} loop is closed, dropping message")
            return False
        return True

    async def next_message(self) -> Optional[str]:
        """Wait for the next outbound message; None once the connection is closed."""
        if self._closed and self.outbox.empty():
            return None
        message = await self.outbox.get()
        return message

    def close(self):
        """Mark closed and wake any reader waiting on the outbox."""
        if self._closed:
            return
        self._closed = True
        if self._on_own_loop():
            self._wake_reader()
        else:
            try:
                self._loop.call_soon_threadsafe(self._wake_reader)
            except RuntimeError:
                pass

    def _put(self, message: str) -> bool:
        try:
            self.outbox.put_nowait(message)
            return True
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {self.id}, skipping event")
            return False

    def _wake_reader(self):
        try:
            self.outbox.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # A full outbox means the reader has something to wake up for anyway
            pass

    def _on_own_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False
