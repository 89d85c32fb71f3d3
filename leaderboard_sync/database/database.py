import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leaderboard_sync.config import Config
from leaderboard_sync.database.models import Base

# Seconds a SQLite writer waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 15


class Database:
    """Async engine and session factory for the key/value and partition tables."""

    def __init__(self, database_url: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def session_factory(self) -> Optional[async_sessionmaker]:
        return self._session_factory

    @staticmethod
    def async_url(database_url: str) -> str:
        """Use the aiosqlite driver for plain sqlite URLs."""
        if database_url.startswith('sqlite://') and not database_url.startswith('sqlite+'):
            return 'sqlite+aiosqlite://' + database_url[len('sqlite://'):]
        return database_url

    async def initialize(self):
        """Open the engine and create missing tables"""
        url = self.async_url(self.database_url)
        self.logger.info(f"Opening leaderboard database ({url.split('://', 1)[0]})")

        connect_args = {'timeout': SQLITE_BUSY_TIMEOUT} if url.startswith('sqlite') else {}
        self.engine = create_async_engine(url, echo=Config.DEBUG, connect_args=connect_args)
        self._session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database ready")

    async def close(self):
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
            self.logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
