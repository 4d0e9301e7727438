from logging_config import get_logger
from realtime.connection import Connection, deliver_all
from realtime.registry import SessionRegistry
from realtime.whiteboard import RoomLanes

logger = get_logger(__name__)


class FileNotices:
    """Tells a room about an uploaded file and keeps a record of it.

    Upload and download of the bytes happen outside this server; only the
    metadata the uploader sends is forwarded and stored.
    """

    def __init__(self, registry: SessionRegistry, store, lanes: RoomLanes):
        self.registry = registry
        self.store = store
        self.lanes = lanes

    def file_uploaded(self, connection: Connection, room_id: str, file_meta):
        delivered = deliver_all(self.registry.list(room_id), "file-uploaded", file_meta, exclude=connection)
        logger.info(f"File notice from {connection.id} sent to {delivered} participant(s) in room {room_id}")

        if not isinstance(file_meta, dict):
            logger.warning(f"Not recording file notice without metadata object from {connection.id} in room {room_id}")
            return None

        async def record():
            await self.store.append_file(room_id, file_meta)

        return self.lanes.submit(room_id, record, "record_file")
