import asyncio
import json
import uuid
from typing import Any, Iterable, Optional

from constants import OUTBOX_MAX
from logging_config import get_logger

logger = get_logger(__name__)


class Connection:
    """Handle on one client WebSocket.

    The handle never owns the socket: the endpoint that accepted it is the only
    place that closes it. Outgoing events go through an in-order outbox that a
    writer task drains, so ``deliver`` never suspends the caller. A client that falls
    ``max_pending`` events behind is treated as gone.
    """

    def __init__(self, websocket, connection_id: Optional[str] = None, max_pending: int = OUTBOX_MAX):
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex
        self.participant = None
        self.closed = False
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self):
        return f"<Connection {self.id}>"

    def start(self):
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"outbox:{self.id}")

    def deliver(self, event: str, data: Any = None) -> bool:
        """Queue an event for this client. Returns False if the socket is gone."""
        if self.closed:
            logger.debug(f"Dropping {event} for closed connection {self.id}")
            return False
        try:
            self._outbox.put_nowait({"type": event, "data": data})
        except asyncio.QueueFull:
            # Client stopped reading; stop buffering for it
            logger.warning(f"Outbox full for connection {self.id}, dropping it as stalled")
            self.closed = True
            return False
        return True

    async def _drain(self):
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_text(json.dumps(message))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # The receive loop sees the disconnect and runs cleanup
                logger.warning(f"Error sending {message['type']} to connection {self.id}: {e}")
                self.closed = True
                return

    async def close(self):
        """Stop delivering. Pending events are discarded."""
        self.closed = True
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None


def deliver_all(participants: Iterable, event: str, data: Any = None, exclude: Optional[Connection] = None) -> int:
    """Fan an event out to participants, skipping ``exclude``. Returns the number queued."""
    count = 0
    for participant in participants:
        if exclude is not None and participant.connection is exclude:
            continue
        if participant.connection.deliver(event, data):
            count += 1
    return count
