"""
Services package for the leaderboard synchronization engine.
"""

from .base import BaseService
from .partition_store import PartitionStore
from .remote import RemoteBackend, RemoteResponse
from .repository import LeaderboardRepository
from .storage import (
    MemoryStorageBackend,
    RedisStorageBackend,
    SQLStorageBackend,
    StorageBackend,
    create_storage_backend,
)
from .sync_manager import SyncManager, should_refresh

__all__ = [
    'BaseService',
    'PartitionStore',
    'RemoteBackend',
    'RemoteResponse',
    'LeaderboardRepository',
    'StorageBackend',
    'MemoryStorageBackend',
    'SQLStorageBackend',
    'RedisStorageBackend',
    'create_storage_backend',
    'SyncManager',
    'should_refresh',
]
