import pytest

from backend import PersistenceError
from realtime.connection import Connection
from realtime.coordinator import RoomCoordinator
from realtime.membership import MembershipManager
from realtime.registry import SessionRegistry


class RecordingConnection(Connection):
    """Connection that keeps delivered events in a list instead of a socket."""

    def __init__(self, connection_id):
        super().__init__(websocket=None, connection_id=connection_id)
        self.sent = []

    def start(self):
        pass

    def deliver(self, event, data=None):
        if self.closed:
            return False
        self.sent.append((event, data))
        return True

    def events(self, name):
        return [data for event, data in self.sent if event == name]


class MemoryStore:
    """In-memory stand-in for RedisBackend."""

    def __init__(self):
        self.rooms = {}
        self.strokes = {}
        self.files = {}
        self.calls = []
        self.fail = False

    def _check(self, operation, room_id):
        if self.fail:
            raise PersistenceError(operation, room_id, ConnectionError("store down"))

    async def create_room(self, room_id, room_data):
        self._check("create_room", room_id)
        self.rooms[room_id] = {k: v for k, v in room_data.items() if v is not None}
        return room_id

    async def get_room(self, room_id):
        self._check("get_room", room_id)
        return self.rooms.get(room_id)

    async def get_strokes(self, room_id):
        self.calls.append(("get_strokes", room_id))
        self._check("get_strokes", room_id)
        return list(self.strokes.get(room_id, []))

    async def count_strokes(self, room_id):
        self._check("count_strokes", room_id)
        return len(self.strokes.get(room_id, []))

    async def append_stroke(self, room_id, stroke):
        self.calls.append(("append_stroke", room_id, stroke))
        self._check("append_stroke", room_id)
        self.strokes.setdefault(room_id, []).append(stroke)

    async def clear_strokes(self, room_id):
        self.calls.append(("clear_strokes", room_id))
        self._check("clear_strokes", room_id)
        self.strokes.pop(room_id, None)

    async def append_file(self, room_id, file_meta):
        self.calls.append(("append_file", room_id, file_meta))
        self._check("append_file", room_id)
        self.files.setdefault(room_id, []).append(file_meta)

    async def get_files(self, room_id):
        self._check("get_files", room_id)
        return list(self.files.get(room_id, []))

@pytest.fixture
def registry():
    registry = SessionRegistry()
    registry.start()
    yield registry
    registry.shutdown()


@pytest.fixture
def membership(registry):
    return MembershipManager(registry)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def coordinator(store):
    coordinator = RoomCoordinator(store)
    coordinator.start()
    return coordinator


@pytest.fixture
def make_connection():
    def factory(connection_id):
        return RecordingConnection(connection_id)
    return factory
