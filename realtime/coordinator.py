"""Room coordination: owns the live room state and routes client events.

Every client frame is ``{"type": <event>, "data": {...}}``. Handlers are plain
callables looked up in ``routes``; none of them awaits, so registry changes
and fan-out for one event finish before the next event is looked at. Store
work goes to per-room lanes shared by the whiteboard and file records.
"""
import json
from typing import Callable, Dict

from constants import SHUTDOWN_FLUSH_TIMEOUT
from logging_config import get_logger
from realtime.connection import Connection
from realtime.files import FileNotices
from realtime.membership import MembershipManager
from realtime.registry import SessionRegistry
from realtime.signaling import SIGNAL_KINDS, SignalingRelay
from realtime.whiteboard import RoomLanes, WhiteboardSynchronizer

logger = get_logger(__name__)


def room_id_of(data: dict) -> str:
    room_id = data["room_id"]
    if not isinstance(room_id, str) or not room_id:
        raise TypeError(f"room_id must be a non-empty string, got {room_id!r}")
    return room_id


class RoomCoordinator:
    def __init__(self, store, registry: SessionRegistry = None):
        self.store = store
        self.registry = registry or SessionRegistry()
        self.membership = MembershipManager(self.registry)
        self.signaling = SignalingRelay(self.registry)
        self.lanes = RoomLanes()
        self.whiteboard = WhiteboardSynchronizer(self.registry, store, self.lanes)
        self.files = FileNotices(self.registry, store, self.lanes)
        self.routes: Dict[str, Callable[[Connection, dict], None]] = {
            "join-room": self._on_join,
            "leave-room": self._on_leave,
            "draw": self._on_draw,
            "load-whiteboard": self._on_load,
            "clear-whiteboard": self._on_clear,
            "file-uploaded": self._on_file_uploaded,
        }
        for kind in SIGNAL_KINDS:
            self.routes[kind] = self._signal_handler(kind)

    def start(self):
        self.registry.start()
        logger.info("Room coordinator started")

    async def shutdown(self, timeout: float = SHUTDOWN_FLUSH_TIMEOUT):
        await self.lanes.shutdown(timeout)
        self.registry.shutdown()
        logger.info("Room coordinator stopped")

    def connect(self, connection: Connection):
        connection.start()
        connection.deliver("connected", {"ref": connection.id})
        logger.debug(f"Connection {connection.id} registered with coordinator")

    def disconnect(self, connection: Connection):
        """Run membership cleanup for a closed socket. Safe to call repeatedly."""
        if self.membership.disconnect(connection):
            logger.debug(f"Cleaned up membership for disconnected connection {connection.id}")

    def handle_text(self, connection: Connection, text: str):
        try:
            frame = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring non-JSON frame from connection {connection.id}")
            return
        self.handle(connection, frame)

    def handle(self, connection: Connection, frame):
        if not isinstance(frame, dict) or not isinstance(frame.get("type"), str):
            logger.warning(f"Ignoring frame without a type from connection {connection.id}")
            return
        event = frame["type"]
        handler = self.routes.get(event)
        if handler is None:
            logger.warning(f"Ignoring unknown event {event!r} from connection {connection.id}")
            return
        data = frame.get("data")
        if data is None:
            data = {}
        try:
            handler(connection, data)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Malformed {event} from connection {connection.id}: {e!r}")

    def _on_join(self, connection: Connection, data: dict):
        self.membership.join(connection, room_id_of(data), data.get("user_id"), data.get("user_name"))

    def _on_leave(self, connection: Connection, data: dict):
        room_id = room_id_of(data) if data.get("room_id") is not None else None
        self.membership.leave(connection, room_id)

    def _signal_handler(self, kind: str):
        def handler(connection: Connection, data: dict):
            self.signaling.relay(connection, kind, data)
        return handler

    def _on_draw(self, connection: Connection, data: dict):
        self.whiteboard.append_stroke(connection, room_id_of(data), data["stroke"])

    def _on_load(self, connection: Connection, data: dict):
        self.whiteboard.load(connection, room_id_of(data))

    def _on_clear(self, connection: Connection, data: dict):
        self.whiteboard.clear(connection, room_id_of(data))

    def _on_file_uploaded(self, connection: Connection, data: dict):
        self.files.file_uploaded(connection, room_id_of(data), data.get("file"))
