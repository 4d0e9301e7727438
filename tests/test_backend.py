"""Redis backend tests against a mocked client"""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from backend import PersistenceError, RedisBackend

STROKE = {"x0": 0, "y0": 0, "x1": 10, "y1": 10, "color": "#fff", "width": 3}


@pytest.fixture
def client():
    return AsyncMock()


class TestStrokeLog:
    @pytest.mark.asyncio
    async def test_append_pushes_json(self, client):
        client.rpush.return_value = 1
        backend = RedisBackend(redis_client=client, ttl=0)

        await backend.append_stroke("ab12cd34", STROKE)

        client.rpush.assert_awaited_once_with("room:strokes:ab12cd34", json.dumps(STROKE))
        client.expire.assert_not_called()

    @pytest.mark.asyncio
    async def test_append_refreshes_ttl(self, client):
        backend = RedisBackend(redis_client=client, ttl=60)

        await backend.append_stroke("r1", STROKE)

        client.expire.assert_awaited_once_with("room:strokes:r1", 60)

    @pytest.mark.asyncio
    async def test_get_strokes_keeps_order(self, client):
        client.lrange.return_value = [json.dumps({"n": 1}), json.dumps({"n": 2})]
        backend = RedisBackend(redis_client=client)

        strokes = await backend.get_strokes("r1")

        client.lrange.assert_awaited_once_with("room:strokes:r1", 0, -1)
        assert strokes == [{"n": 1}, {"n": 2}]

    @pytest.mark.asyncio
    async def test_get_strokes_skips_garbage(self, client):
        client.lrange.return_value = ["not json", json.dumps({"n": 1})]
        backend = RedisBackend(redis_client=client)

        assert await backend.get_strokes("r1") == [{"n": 1}]

    @pytest.mark.asyncio
    async def test_clear_deletes_log(self, client):
        backend = RedisBackend(redis_client=client)

        await backend.clear_strokes("r1")

        client.delete.assert_awaited_once_with("room:strokes:r1")

    @pytest.mark.asyncio
    async def test_redis_errors_become_persistence_errors(self, client):
        client.rpush.side_effect = RedisConnectionError("down")
        backend = RedisBackend(redis_client=client)

        with pytest.raises(PersistenceError) as excinfo:
            await backend.append_stroke("r1", STROKE)

        assert excinfo.value.room_id == "r1"
        assert excinfo.value.operation == "append_stroke"


class TestRoomMeta:
    @pytest.mark.asyncio
    async def test_create_room_skips_none(self, client):
        backend = RedisBackend(redis_client=client, ttl=0)

        await backend.create_room("r1", {"room_id": "r1", "name": None, "created_by": "u1"})

        client.hset.assert_awaited_once_with("room:meta:r1", mapping={"room_id": "r1", "created_by": "u1"})

    @pytest.mark.asyncio
    async def test_get_room_keeps_ids_as_strings(self, client):
        client.hgetall.return_value = {"room_id": "12345678", "created_at": "2026-01-01T00:00:00"}
        backend = RedisBackend(redis_client=client)

        room = await backend.get_room("12345678")

        assert room["room_id"] == "12345678"

    @pytest.mark.asyncio
    async def test_get_missing_room(self, client):
        client.hgetall.return_value = {}
        backend = RedisBackend(redis_client=client)

        assert await backend.get_room("nope") is None

    @pytest.mark.asyncio
    async def test_ping_failure_returns_false(self, client):
        client.ping.side_effect = RedisConnectionError("down")
        backend = RedisBackend(redis_client=client)

        assert await backend.ping() is False


class TestFileRecords:
    @pytest.mark.asyncio
    async def test_append_file_pushes_json(self, client):
        backend = RedisBackend(redis_client=client, ttl=0)
        meta = {"filename": "notes.pdf", "fileId": "f1"}

        await backend.append_file("r1", meta)

        client.rpush.assert_awaited_once_with("room:files:r1", json.dumps(meta))

    @pytest.mark.asyncio
    async def test_get_files_keeps_order(self, client):
        client.lrange.return_value = [json.dumps({"fileId": "f1"}), json.dumps({"fileId": "f2"})]
        backend = RedisBackend(redis_client=client)

        assert await backend.get_files("r1") == [{"fileId": "f1"}, {"fileId": "f2"}]
        client.lrange.assert_awaited_once_with("room:files:r1", 0, -1)

    @pytest.mark.asyncio
    async def test_append_file_error_becomes_persistence_error(self, client):
        client.rpush.side_effect = RedisConnectionError("down")
        backend = RedisBackend(redis_client=client)

        with pytest.raises(PersistenceError) as excinfo:
            await backend.append_file("r1", {"filename": "a"})

        assert excinfo.value.operation == "append_file"
