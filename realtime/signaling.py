from logging_config import get_logger
from realtime.connection import Connection
from realtime.registry import SessionRegistry

logger = get_logger(__name__)

SIGNAL_KINDS = ("offer", "answer", "ice-candidate")


class SignalingRelay:
    """Forwards WebRTC negotiation messages between two participants of a room.

    Payloads are passed through untouched. Only a sender that has joined a room
    can signal, and only to a current member of that same room; anything else
    is dropped without telling the sender. Peers recover by renegotiating.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def relay(self, connection: Connection, kind: str, data: dict) -> bool:
        if kind not in SIGNAL_KINDS:
            raise ValueError(f"Unknown signaling kind: {kind}")

        sender = connection.participant
        target_ref = data.get("to")
        if sender is None:
            logger.debug(f"Dropping {kind} from {connection.id}: sender is not in a room")
            return False

        for participant in self.registry.list(sender.room_id):
            if participant.ref == target_ref and participant.connection is not connection:
                delivered = participant.connection.deliver(kind, {"from": connection.id, "payload": data.get("payload")})
                logger.debug(f"Relayed {kind} {connection.id} -> {target_ref} in room {sender.room_id}: {delivered}")
                return delivered

        logger.debug(f"Dropping {kind} from {connection.id}: target {target_ref} not in room {sender.room_id}")
        return False
