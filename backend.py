import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB, ROOM_TTL_SECONDS
from redis_keys import REDIS_META_KEY, REDIS_STROKES_KEY, REDIS_FILES_KEY
from logging_config import get_logger

logger = get_logger(__name__)


class PersistenceError(Exception):
    """The durable store could not complete a read or write."""

    def __init__(self, operation: str, room_id: str, cause: Exception):
        super().__init__(f"{operation} failed for room {room_id}: {cause}")
        self.operation = operation
        self.room_id = room_id
        self.cause = cause


class RedisBackend:
    """Durable room store: room metadata, the per-room stroke log and shared file records.

    Strokes live in a Redis list so appends keep arrival order and a clear is
    a single DEL. Every Redis failure is re-raised as PersistenceError.
    """

    def __init__(self, redis_client=None, ttl: int = ROOM_TTL_SECONDS):
        if redis_client is None:
            redis_client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                decode_responses=True,
            )
        self.redis_client = redis_client
        self.ttl = ttl
        logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")

    async def ping(self) -> bool:
        try:
            await self.redis_client.ping()
        except RedisError as e:
            logger.error(f"Failed to reach Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
            return False
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return True

    async def close(self):
        await self.redis_client.aclose()
        logger.debug("Redis client closed")

    async def create_room(self, room_id: str, room_data: dict):
        logger.info(f"Creating room {room_id} with TTL {self.ttl} seconds")
        key = REDIS_META_KEY.format(slug=room_id)
        # Convert dict values to strings for Redis hash, skip None values
        room_data_str = {}
        for k, v in room_data.items():
            if v is None:
                continue
            if isinstance(v, (dict, list)):
                room_data_str[k] = json.dumps(v)
            else:
                room_data_str[k] = str(v)
        try:
            await self.redis_client.hset(key, mapping=room_data_str)
            if self.ttl:
                await self.redis_client.expire(key, self.ttl)
        except RedisError as e:
            raise PersistenceError("create_room", room_id, e) from e
        logger.debug(f"Room {room_id} created successfully with key: {key}")
        return room_id

    async def get_room(self, room_id: str) -> Optional[dict]:
        logger.debug(f"Fetching room {room_id}")
        key = REDIS_META_KEY.format(slug=room_id)
        try:
            room_data = await self.redis_client.hgetall(key)
        except RedisError as e:
            raise PersistenceError("get_room", room_id, e) from e
        if not room_data:
            logger.debug(f"Room {room_id} not found in Redis")
            return None
        result = {}
        for k, v in room_data.items():
            try:
                result[k] = json.loads(v)
            except (json.JSONDecodeError, TypeError):
                result[k] = v
        # hash fields that look numeric come back decoded; ids must stay strings
        for k in ("room_id", "created_by", "name"):
            if k in room_data:
                result[k] = room_data[k]
        return result

    async def get_strokes(self, room_id: str) -> list:
        """Return the full stroke log for a room, oldest first."""
        key = REDIS_STROKES_KEY.format(slug=room_id)
        try:
            raw = await self.redis_client.lrange(key, 0, -1)
        except RedisError as e:
            raise PersistenceError("get_strokes", room_id, e) from e
        strokes = []
        for item in raw:
            try:
                strokes.append(json.loads(item))
            except json.JSONDecodeError:
                logger.warning(f"Skipping undecodable stroke entry in room {room_id}")
        logger.debug(f"Loaded {len(strokes)} strokes for room {room_id}")
        return strokes

    async def count_strokes(self, room_id: str) -> int:
        key = REDIS_STROKES_KEY.format(slug=room_id)
        try:
            return await self.redis_client.llen(key)
        except RedisError as e:
            raise PersistenceError("count_strokes", room_id, e) from e

    async def append_stroke(self, room_id: str, stroke) -> None:
        key = REDIS_STROKES_KEY.format(slug=room_id)
        try:
            length = await self.redis_client.rpush(key, json.dumps(stroke))
            if self.ttl:
                await self.redis_client.expire(key, self.ttl)
        except RedisError as e:
            raise PersistenceError("append_stroke", room_id, e) from e
        logger.debug(f"Appended stroke to room {room_id}, log length {length}")

    async def clear_strokes(self, room_id: str) -> None:
        key = REDIS_STROKES_KEY.format(slug=room_id)
        try:
            deleted = await self.redis_client.delete(key)
        except RedisError as e:
            raise PersistenceError("clear_strokes", room_id, e) from e
        logger.debug(f"Cleared stroke log for room {room_id}: deleted={deleted}")

    async def append_file(self, room_id: str, file_meta: dict) -> None:
        """Record metadata of a file shared in a room. The file itself lives elsewhere."""
        key = REDIS_FILES_KEY.format(slug=room_id)
        try:
            await self.redis_client.rpush(key, json.dumps(file_meta))
            if self.ttl:
                await self.redis_client.expire(key, self.ttl)
        except RedisError as e:
            raise PersistenceError("append_file", room_id, e) from e
        logger.debug(f"Recorded file {file_meta.get('filename')} for room {room_id}")

    async def get_files(self, room_id: str) -> list:
        key = REDIS_FILES_KEY.format(slug=room_id)
        try:
            raw = await self.redis_client.lrange(key, 0, -1)
        except RedisError as e:
            raise PersistenceError("get_files", room_id, e) from e
        files = []
        for item in raw:
            try:
                files.append(json.loads(item))
            except json.JSONDecodeError:
                logger.warning(f"Skipping undecodable file entry in room {room_id}")
        return files
