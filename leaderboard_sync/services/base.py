"""
Base service class for leaderboard persistence services.

Shared by the SQL key/value backend and the partition store. Both write
through short transactions that SQLite may reject with "database is locked"
while another writer holds the file; those writes are retried with backoff.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar('T')

# First backoff delay in seconds, doubled per attempt
RETRY_BASE_DELAY = 0.1


class BaseService:
    """Base class for services that own an async session factory."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: committed on exit, rolled back if the block raises."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]], max_attempts: int = 3) -> T:
        """
        Run ``operation`` (which opens its own session) until it succeeds.

        Only driver-level ``OperationalError`` (a locked or busy database) is
        retried. Domain errors raised inside the transaction, such as a version
        conflict, propagate on the first attempt.
        """
        for attempt in range(1, max_attempts + 1):
            try:
                return await operation()
            except OperationalError as e:
                if attempt == max_attempts:
                    logger.error(f"{operation.__name__} failed after {max_attempts} attempts: {e}")
                    raise
                delay = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(f"{operation.__name__} hit a busy database (attempt {attempt}), retrying in {delay}s")
                await asyncio.sleep(delay)
