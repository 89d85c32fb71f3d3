"""
Server-side store of versioned leaderboard partitions.

Each partition is one row holding the full score list and a version counter.
Writes are conditional: the version check and the increment happen in the same
UPDATE statement, so two writers holding the same version cannot both succeed.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from leaderboard_sync.database.models import LeaderboardPartition
from leaderboard_sync.services.base import BaseService
from leaderboard_sync.utils.exceptions import (
    PartitionNotFoundError,
    ScoreValidationError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)


class PartitionStore(BaseService):
    """Versioned partition persistence with optimistic concurrency."""

    @staticmethod
    def _to_dict(partition: LeaderboardPartition) -> Dict[str, Any]:
        try:
            scores = json.loads(partition.scores or '[]')
        except ValueError:
            logger.error(f"Partition '{partition.id}' holds undecodable scores, serving an empty list")
            scores = []
        return {
            'id': partition.id,
            'scores': scores if isinstance(scores, list) else [],
            'version': partition.version or 0,
        }

    @staticmethod
    def _validate_scores(scores: Any) -> List[Any]:
        if not isinstance(scores, list):
            raise ScoreValidationError("scores must be a list")
        return scores

    async def get(self, partition_id: str) -> Dict[str, Any]:
        """Current ``{id, scores, version}`` of a partition."""
        async with self.get_session() as session:
            partition = await session.get(LeaderboardPartition, str(partition_id))
            if partition is None:
                raise PartitionNotFoundError(str(partition_id))
            return self._to_dict(partition)

    async def create(self, partition_id: str, scores: Optional[List[Any]] = None) -> Dict[str, Any]:
        """Create a partition at version 0, or return it unchanged if it already exists."""
        scores = self._validate_scores(scores if scores is not None else [])
        async with self.get_session() as session:
            partition = await session.get(LeaderboardPartition, str(partition_id))
            if partition is None:
                partition = LeaderboardPartition(id=str(partition_id), scores=json.dumps(scores), version=0)
                session.add(partition)
                await session.flush()
                logger.info(f"Created leaderboard partition '{partition_id}'")
            return self._to_dict(partition)

    async def conditional_update(
        self,
        partition_id: str,
        scores: List[Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Replace a partition's scores if its version still matches.

        Args:
            partition_id: Partition to write
            scores: Full replacement score list
            expected_version: Version the writer last observed; None writes unconditionally

        Returns:
            The partition after the write, with its version incremented

        Raises:
            PartitionNotFoundError: The partition does not exist
            VersionConflictError: ``expected_version`` is stale; carries the current record
        """
        partition_id = str(partition_id)
        scores = self._validate_scores(scores)

        async def attempt():
            async with self.get_session() as session:
                stmt = (
                    update(LeaderboardPartition)
                    .where(LeaderboardPartition.id == partition_id)
                    .values(
                        scores=json.dumps(scores),
                        version=LeaderboardPartition.version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if expected_version is not None:
                    stmt = stmt.where(LeaderboardPartition.version == expected_version)
                result = await session.execute(stmt)

                if result.rowcount == 1:
                    partition = (await session.execute(
                        select(LeaderboardPartition)
                        .where(LeaderboardPartition.id == partition_id)
                        .execution_options(populate_existing=True)
                    )).scalar_one()
                    return self._to_dict(partition)

                partition = await session.get(LeaderboardPartition, partition_id)
                if partition is None:
                    raise PartitionNotFoundError(partition_id)
                current = self._to_dict(partition)
                raise VersionConflictError(
                    partition_id, expected_version, current['version'], current['scores']
                )

        updated = await self.execute_with_retry(attempt)
        logger.debug(f"Partition '{partition_id}' updated to version {updated['version']}")
        return updated
