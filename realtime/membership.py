from typing import Optional

from logging_config import get_logger
from realtime.connection import Connection, deliver_all
from realtime.registry import JOINED, LEFT, Participant, SessionRegistry

logger = get_logger(__name__)


class MembershipManager:
    """Drives participant join/leave transitions on top of the registry.

    Explicit leave and connection close both end in ``_cleanup``, which runs at
    most once per participant because it detaches the participant from its
    connection before anything else.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def join(self, connection: Connection, room_id: str, user_id: str, user_name: str) -> Optional[Participant]:
        current = connection.participant
        if current is not None:
            if current.room_id == room_id:
                # Same room again: refresh the joiner's view, tell nobody else
                others = [p.to_dict() for p in self.registry.list(room_id) if p is not current]
                connection.deliver("room-participants", others)
                return current
            logger.info(f"Connection {connection.id} switching from room {current.room_id} to {room_id}")
            self._cleanup(current)

        participant = Participant(connection=connection, room_id=room_id, user_id=user_id, user_name=user_name)
        if not self.registry.join(room_id, participant):
            return None
        participant.state = JOINED
        connection.participant = participant

        members = self.registry.list(room_id)
        others = [p.to_dict() for p in members if p is not participant]
        logger.info(f"{user_name} ({connection.id}) joined room {room_id} - {len(members)} participant(s)")

        connection.deliver("room-participants", others)
        deliver_all(members, "user-joined", participant.to_dict(), exclude=connection)
        return participant

    def leave(self, connection: Connection, room_id: Optional[str] = None) -> bool:
        """Leave the connection's room. ``room_id``, when given, must match it."""
        participant = connection.participant
        if participant is None:
            logger.debug(f"Leave from connection {connection.id} with no room, ignoring")
            return False
        if room_id is not None and participant.room_id != room_id:
            logger.debug(f"Connection {connection.id} is not in room {room_id}, ignoring leave")
            return False
        self._cleanup(participant)
        return True

    def disconnect(self, connection: Connection) -> bool:
        return self.leave(connection)

    def _cleanup(self, participant: Participant):
        if participant.state == LEFT:
            return
        identity = participant.to_dict()
        room_id = participant.room_id

        participant.state = LEFT
        if participant.connection.participant is participant:
            participant.connection.participant = None
        self.registry.leave(room_id, participant)
        logger.info(f"{participant.user_name} ({participant.ref}) left room {room_id}")

        remaining = self.registry.list(room_id)
        if remaining:
            deliver_all(remaining, "user-left", identity)
