"""Tests for the local key/value storage backends."""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from leaderboard_sync.database.database import Database
from leaderboard_sync.services.storage import (
    MemoryStorageBackend,
    RedisStorageBackend,
    SQLStorageBackend,
    create_storage_backend,
)


@pytest_asyncio.fixture
async def sql_storage(tmp_path):
    backend = await SQLStorageBackend.from_url(f"sqlite:///{tmp_path / 'kv.db'}")
    yield backend
    await backend.close()


class TestMemoryStorage:

    @pytest.mark.asyncio
    async def test_missing_key_returns_fallback(self):
        storage = MemoryStorageBackend()
        assert await storage.get_json("nope", []) == []
        assert await storage.get_json("nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        storage = MemoryStorageBackend()
        assert await storage.set_json("k", [{"id": "A", "score": 1}]) is True
        assert await storage.get_json("k") == [{"id": "A", "score": 1}]

    @pytest.mark.asyncio
    async def test_values_are_not_aliased(self):
        storage = MemoryStorageBackend()
        value = [{"id": "A"}]
        await storage.set_json("k", value)
        value.append({"id": "B"})
        assert await storage.get_json("k") == [{"id": "A"}]

    @pytest.mark.asyncio
    async def test_unserializable_value_is_not_stored(self):
        storage = MemoryStorageBackend()
        assert await storage.set_json("k", {"bad": object()}) is False
        assert await storage.get_json("k", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_corrupt_json_returns_fallback(self):
        storage = MemoryStorageBackend()
        await storage._write("k", "{not json")
        assert await storage.get_json("k", []) == []

    @pytest.mark.asyncio
    async def test_remove(self):
        storage = MemoryStorageBackend()
        await storage.set_json("k", 1)
        await storage.remove("k")
        await storage.remove("k")
        assert await storage.get_json("k") is None


class TestSQLStorage:

    @pytest.mark.asyncio
    async def test_round_trip_and_overwrite(self, sql_storage):
        assert await sql_storage.get_json("board", []) == []
        assert await sql_storage.set_json("board", [{"id": "A", "score": 1}])
        assert await sql_storage.set_json("board", [{"id": "B", "score": 2}])
        assert await sql_storage.get_json("board") == [{"id": "B", "score": 2}]

    @pytest.mark.asyncio
    async def test_remove(self, sql_storage):
        await sql_storage.set_json("board", [])
        await sql_storage.remove("board")
        assert await sql_storage.get_json("board", "gone") == "gone"

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'persist.db'}"
        first = await SQLStorageBackend.from_url(url)
        await first.set_json("board", [{"id": "ABC", "score": 7}])
        await first.close()

        second = await SQLStorageBackend.from_url(url)
        try:
            assert await second.get_json("board") == [{"id": "ABC", "score": 7}]
        finally:
            await second.close()


class TestRedisStorage:

    @pytest.mark.asyncio
    async def test_reads_decode_bytes(self):
        client = AsyncMock()
        client.get.return_value = b'[{"id": "A", "score": 3}]'
        storage = RedisStorageBackend(client)
        assert await storage.get_json("board") == [{"id": "A", "score": 3}]
        client.get.assert_awaited_once_with("board")

    @pytest.mark.asyncio
    async def test_write_serializes(self):
        client = AsyncMock()
        storage = RedisStorageBackend(client)
        assert await storage.set_json("board", [1, 2]) is True
        client.set.assert_awaited_once_with("board", "[1, 2]")

    @pytest.mark.asyncio
    async def test_redis_errors_degrade(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")
        client.set.side_effect = RedisConnectionError("down")
        storage = RedisStorageBackend(client)
        assert await storage.get_json("board", []) == []
        assert await storage.set_json("board", []) is False

    @pytest.mark.asyncio
    async def test_close_closes_client(self):
        client = AsyncMock()
        await RedisStorageBackend(client).close()
        client.aclose.assert_awaited_once()


class TestCreateStorageBackend:

    @pytest.mark.asyncio
    async def test_memory(self):
        assert isinstance(await create_storage_backend('memory'), MemoryStorageBackend)

    @pytest.mark.asyncio
    async def test_unknown_backend(self):
        with pytest.raises(ValueError):
            await create_storage_backend('floppy')

    @pytest.mark.asyncio
    async def test_unreachable_redis_falls_back_to_memory(self):
        with patch('leaderboard_sync.services.storage.RedisUtils.create_redis_client',
                   new=AsyncMock(return_value=None)):
            assert isinstance(await create_storage_backend('redis'), MemoryStorageBackend)

    @pytest.mark.asyncio
    async def test_sqlite_uses_configured_url(self, tmp_path):
        with patch('leaderboard_sync.services.storage.Config.DATABASE_URL', f"sqlite:///{tmp_path / 'c.db'}"):
            backend = await create_storage_backend('sqlite')
        try:
            assert isinstance(backend, SQLStorageBackend)
            assert await backend.set_json("k", {"ok": True})
        finally:
            await backend.close()


class TestDatabase:

    @pytest.mark.parametrize("url,expected", [
        ("sqlite:///leaderboard.db", "sqlite+aiosqlite:///leaderboard.db"),
        ("sqlite://", "sqlite+aiosqlite://"),
        ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
        ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
    ])
    def test_async_url(self, url, expected):
        assert Database.async_url(url) == expected

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self, tmp_path):
        async with Database(f"sqlite:///{tmp_path / 'ctx.db'}") as database:
            backend = SQLStorageBackend(database.session_factory)
            assert await backend.set_json("k", [1])
            assert await backend.get_json("k") == [1]
        assert database.engine is None
        assert database.session_factory is None

    def test_logs_through_package_logger(self):
        database = Database("sqlite://")
        assert database.logger.name == 'leaderboard_sync.database.database'
        assert database.logger.handlers == []
        assert database.logger.propagate
