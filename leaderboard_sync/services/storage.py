"""
Local key/value JSON storage backends.

Every backend exposes the same exception-free contract: ``get_json`` returns the
fallback on missing keys, unreadable storage or undecodable JSON, ``set_json``
reports success as a boolean. Backend-specific failures are raised internally
as ``StorageError`` and absorbed here.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from leaderboard_sync.config import Config
from leaderboard_sync.database.database import Database
from leaderboard_sync.database.models import KeyValueRecord
from leaderboard_sync.services.base import BaseService
from leaderboard_sync.utils.exceptions import StorageError
from leaderboard_sync.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Defensive JSON wrapper around a persistent key/value store."""

    async def get_json(self, key: str, fallback: Any = None) -> Any:
        """Read and parse a JSON value; ``fallback`` on any failure."""
        try:
            raw = await self._read(key)
        except StorageError as e:
            logger.warning(f"{e}; using fallback")
            return fallback
        if raw is None:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable JSON stored under '{key}'")
            return fallback

    async def set_json(self, key: str, value: Any) -> bool:
        """Serialize and store a JSON value; returns whether the write succeeded."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Cannot serialize value for '{key}': {e}")
            return False
        try:
            await self._write(key, raw)
        except StorageError as e:
            logger.error(str(e))
            return False
        return True

    async def remove(self, key: str) -> None:
        try:
            await self._delete(key)
        except StorageError as e:
            logger.warning(str(e))

    async def close(self) -> None:
        """Release underlying connections."""

    @abstractmethod
    async def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def _write(self, key: str, raw: str) -> None:
        ...

    @abstractmethod
    async def _delete(self, key: str) -> None:
        ...


class MemoryStorageBackend(StorageBackend):
    """Process-local storage; values are kept serialized so callers cannot alias them."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def _write(self, key: str, raw: str) -> None:
        self._data[key] = raw

    async def _delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLStorageBackend(BaseService, StorageBackend):
    """Key/value storage in a SQL table through the async session factory."""

    def __init__(self, session_factory, database: Optional[Database] = None):
        super().__init__(session_factory)
        self._database = database

    @classmethod
    async def from_url(cls, database_url: Optional[str] = None) -> "SQLStorageBackend":
        """Create, initialize and own a database for the given URL."""
        database = Database(database_url)
        await database.initialize()
        return cls(database.session_factory, database=database)

    async def _read(self, key: str) -> Optional[str]:
        try:
            async with self.get_session() as session:
                record = await session.get(KeyValueRecord, key)
                return record.value if record else None
        except SQLAlchemyError as e:
            raise StorageError("read", key, str(e)) from e

    async def _write(self, key: str, raw: str) -> None:
        async def upsert():
            async with self.get_session() as session:
                record = await session.get(KeyValueRecord, key)
                if record is None:
                    session.add(KeyValueRecord(key=key, value=raw))
                else:
                    record.value = raw

        try:
            await self.execute_with_retry(upsert)
        except SQLAlchemyError as e:
            raise StorageError("write", key, str(e)) from e

    async def _delete(self, key: str) -> None:
        try:
            async with self.get_session() as session:
                record = await session.get(KeyValueRecord, key)
                if record is not None:
                    await session.delete(record)
        except SQLAlchemyError as e:
            raise StorageError("delete", key, str(e)) from e

    async def close(self) -> None:
        if self._database is not None:
            await self._database.close()


class RedisStorageBackend(StorageBackend):
    """Key/value storage in Redis."""

    def __init__(self, client):
        self._client = client

    async def _read(self, key: str) -> Optional[str]:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise StorageError("read", key, str(e)) from e
        if isinstance(raw, bytes):
            return raw.decode('utf-8')
        return raw

    async def _write(self, key: str, raw: str) -> None:
        try:
            await self._client.set(key, raw)
        except RedisError as e:
            raise StorageError("write", key, str(e)) from e

    async def _delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise StorageError("delete", key, str(e)) from e

    async def close(self) -> None:
        await self._client.aclose()


async def create_storage_backend(backend: Optional[str] = None) -> StorageBackend:
    """Build the configured storage backend, degrading to memory when unreachable."""
    backend = (backend or Config.STORAGE_BACKEND).lower()

    if backend == 'memory':
        return MemoryStorageBackend()

    if backend == 'redis':
        client = await RedisUtils.create_redis_client(Config.REDIS_URL)
        if client is None:
            logger.error("Redis storage unavailable, falling back to in-memory storage")
            return MemoryStorageBackend()
        return RedisStorageBackend(client)

    if backend == 'sqlite':
        try:
            return await SQLStorageBackend.from_url(Config.DATABASE_URL)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"SQL storage unavailable, falling back to in-memory storage: {e}")
            return MemoryStorageBackend()

    raise ValueError(f"Unknown storage backend: {backend}")
