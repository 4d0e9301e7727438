from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from logging_config import get_logger

logger = get_logger(__name__)

JOINING = "joining"
JOINED = "joined"
LEFT = "left"


@dataclass(eq=False)
class Participant:
    connection: object
    room_id: str
    user_id: str
    user_name: str
    state: str = JOINING
    joined_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def ref(self) -> str:
        return self.connection.id

    def to_dict(self) -> dict:
        return {"ref": self.ref, "user_id": self.user_id, "user_name": self.user_name}


class SessionRegistry:
    """Live mapping of room id to connected participants.

    A room entry exists only while it has at least one participant. All
    mutation happens on the event loop thread without awaiting, so no locking.
    """

    def __init__(self):
        # Format: {room_id: {connection_id: Participant}}, insertion ordered
        self._rooms: Dict[str, Dict[str, Participant]] = {}
        self.running = False

    def start(self):
        self._rooms.clear()
        self.running = True
        logger.info("Session registry started")

    def shutdown(self):
        rooms = len(self._rooms)
        self._rooms.clear()
        self.running = False
        logger.info(f"Session registry stopped, dropped {rooms} live rooms")

    def join(self, room_id: str, participant: Participant) -> bool:
        members = self._rooms.setdefault(room_id, {})
        if participant.ref in members:
            logger.debug(f"Connection {participant.ref} already in room {room_id}")
            return False
        members[participant.ref] = participant
        logger.debug(f"Added {participant.ref} to room {room_id} ({len(members)} participants)")
        return True

    def leave(self, room_id: str, participant: Participant) -> bool:
        members = self._rooms.get(room_id)
        if not members or members.get(participant.ref) is not participant:
            return False
        del members[participant.ref]
        if not members:
            del self._rooms[room_id]
            logger.debug(f"Room {room_id} is empty, removed from registry")
        return True

    def list(self, room_id: str) -> List[Participant]:
        return list(self._rooms.get(room_id, {}).values())

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    @property
    def room_count(self) -> int:
        return len(self._rooms)
