import asyncio
from typing import Awaitable, Callable, Dict, Optional, Set

from backend import PersistenceError
from logging_config import get_logger
from realtime.connection import Connection, deliver_all
from realtime.registry import SessionRegistry

logger = get_logger(__name__)


class RoomLanes:
    """Runs store calls in the background, one FIFO lane per room.

    Each job waits on its room's lock, and asyncio.Lock wakes waiters in
    arrival order, so store calls for a room happen in submission order while
    rooms proceed independently.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        # Format: {room_id: {task, ...}} for jobs not yet finished
        self._tasks: Dict[str, Set[asyncio.Task]] = {}

    def submit(self, room_id: str, job: Callable[[], Awaitable[None]], description: str) -> asyncio.Task:
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        task = asyncio.create_task(self._run(room_id, lock, job, description), name=f"{description}:{room_id}")
        self._tasks.setdefault(room_id, set()).add(task)
        task.add_done_callback(lambda t: self._finished(room_id, t))
        return task

    def _finished(self, room_id: str, task: asyncio.Task):
        tasks = self._tasks.get(room_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            # Nobody holds or waits on the lock any more
            del self._tasks[room_id]
            self._locks.pop(room_id, None)

    async def _run(self, room_id: str, lock: asyncio.Lock, job, description: str):
        try:
            async with lock:
                await job()
        except PersistenceError as e:
            logger.error(f"{description} failed for room {room_id}: {e}", exc_info=True)
        except Exception as e:
            logger.error(f"Unexpected error in {description} for room {room_id}: {e}", exc_info=True)

    def pending(self, room_id: Optional[str] = None) -> Set[asyncio.Task]:
        if room_id is not None:
            return set(self._tasks.get(room_id, ()))
        return {task for tasks in self._tasks.values() for task in tasks}

    async def flush(self, room_id: Optional[str] = None):
        tasks = self.pending(room_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self, timeout: float):
        tasks = self.pending()
        if not tasks:
            return
        logger.info(f"Waiting up to {timeout}s for {len(tasks)} queued store operations")
        done, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} store operations still queued at shutdown")
            await asyncio.gather(*not_done, return_exceptions=True)


class WhiteboardSynchronizer:
    """Live stroke fan-out plus ordered access to the durable stroke log.

    The broadcast is what live participants see; the log only exists to seed
    late joiners, so a failed write is logged and never retried.
    """

    def __init__(self, registry: SessionRegistry, store, lanes: Optional[RoomLanes] = None):
        self.registry = registry
        self.store = store
        self.lanes = lanes or RoomLanes()

    def append_stroke(self, connection: Connection, room_id: str, stroke) -> asyncio.Task:
        delivered = deliver_all(self.registry.list(room_id), "draw", stroke, exclude=connection)
        logger.debug(f"Broadcast stroke from {connection.id} to {delivered} participant(s) in room {room_id}")

        # TODO: coalesce strokes per room before writing, one RPUSH per segment is heavy for fast drawing
        async def persist():
            await self.store.append_stroke(room_id, stroke)

        return self.lanes.submit(room_id, persist, "append_stroke")

    def load(self, connection: Connection, room_id: str) -> asyncio.Task:
        async def send_log():
            strokes = await self.store.get_strokes(room_id)
            connection.deliver("load-whiteboard", strokes)
            logger.debug(f"Sent {len(strokes)} strokes of room {room_id} to {connection.id}")

        return self.lanes.submit(room_id, send_log, "load_whiteboard")

    def clear(self, connection: Connection, room_id: str) -> asyncio.Task:
        delivered = deliver_all(self.registry.list(room_id), "clear-whiteboard")
        logger.info(f"Whiteboard of room {room_id} cleared by {connection.id}, notified {delivered} participant(s)")

        async def truncate():
            await self.store.clear_strokes(room_id)

        return self.lanes.submit(room_id, truncate, "clear_whiteboard")

    async def flush(self, room_id: Optional[str] = None):
        await self.lanes.flush(room_id)

