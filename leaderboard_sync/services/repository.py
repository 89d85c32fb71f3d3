"""
Leaderboard repository over local storage and the remote partition.

Small async API - load_local, load_remote, save_local, save_remote - that never
raises: failures come back as empty lists, ``False`` or a ``SaveResult`` with
both flags cleared. Remote writes carry the last observed version for
optimistic concurrency.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Tuple

from leaderboard_sync.config import Config
from leaderboard_sync.constants import SyncConstants
from leaderboard_sync.data_models.leaderboard import Entry, SaveResult, entries_to_dicts
from leaderboard_sync.services.remote import RemoteBackend
from leaderboard_sync.services.storage import StorageBackend
from leaderboard_sync.utils.ranking import RankingEngine

logger = logging.getLogger(__name__)


class LeaderboardRepository:
    """Persistence repository (local + optional remote) for leaderboard entries."""

    def __init__(
        self,
        storage: StorageBackend,
        remote: Optional[RemoteBackend] = None,
        key: Optional[str] = None,
        max_entries: Optional[int] = None,
    ):
        self.key = key or Config.STORAGE_KEY
        self.max_entries = max_entries if max_entries is not None else Config.MAX_ENTRIES
        self._storage = storage
        self._remote = remote
        self._version: Optional[int] = None  # None means "write unconditionally"
        self._remote_read_failed = False

    @property
    def version(self) -> Optional[int]:
        """Last partition version observed from the server."""
        return self._version

    @property
    def remote_read_failed(self) -> bool:
        """Whether the last ``load_remote`` got no response body."""
        return self._remote_read_failed

    @property
    def remote_configured(self) -> bool:
        return self._remote is not None and self._remote.configured

    async def load_local(self) -> List[Entry]:
        parsed = await self._storage.get_json(self.key, [])
        if not isinstance(parsed, list):
            logger.warning(f"Local leaderboard under '{self.key}' is not a list, ignoring it")
            return []
        return RankingEngine.normalize(parsed)[:self.max_entries]

    async def save_local(self, entries: List[Entry]) -> bool:
        """Overwrite the stored list with ``entries`` cut to capacity."""
        return await self._storage.set_json(self.key, entries_to_dicts(list(entries)[:self.max_entries]))

    async def load_remote(self) -> List[Entry]:
        """
        Read the partition, accepting a bare list or ``{scores, version}``.

        Records the partition version (0 when the payload carries none or the
        read failed, so the next write stays conditional).
        """
        if not self.remote_configured:
            return []
        parsed = await self._remote.get_json()
        self._remote_read_failed = parsed is None
        if parsed is None:
            self._version = SyncConstants.LEGACY_VERSION
            return []

        scores, version = self._extract(parsed)
        self._version = version if version is not None else SyncConstants.LEGACY_VERSION
        if scores is None:
            logger.warning("Remote leaderboard payload has no score list")
            return []
        return RankingEngine.normalize(scores)[:self.max_entries]

    async def save_remote(self, entries: List[Entry]) -> SaveResult:
        """
        Conditionally write ``entries`` to the partition.

        Transport failure echoes the proposal back; a conflict returns the
        server's current list and adopts its version; success returns the
        server's resulting list and advances the version.
        """
        payload = list(entries)[:self.max_entries]
        if not self.remote_configured:
            return SaveResult(ok=False, conflict=False, entries=payload)

        body = {'scores': entries_to_dicts(payload)}
        if self._version is not None:
            body['version'] = self._version

        response = await self._remote.put_json(body)
        if response is None:
            return SaveResult(ok=False, conflict=False, entries=payload)

        scores, version = self._extract(response.payload)
        if response.status_code == SyncConstants.STATUS_CONFLICT or self._flags_conflict(response.payload):
            if version is not None:
                self._version = version
            logger.info(f"Remote write rejected as stale, server is at version {self._version}")
            return SaveResult(
                ok=False,
                conflict=True,
                entries=RankingEngine.normalize(scores or [])[:self.max_entries],
            )

        if version is not None:
            self._version = version
        elif self._version is not None:
            self._version += 1

        accepted = RankingEngine.normalize(scores)[:self.max_entries] if scores is not None else payload
        return SaveResult(ok=True, conflict=False, entries=accepted)

    @staticmethod
    def _flags_conflict(payload: Any) -> bool:
        return isinstance(payload, Mapping) and bool(payload.get('conflict'))

    @staticmethod
    def _extract(payload: Any) -> Tuple[Optional[list], Optional[int]]:
        """Pull (scores, version) out of any supported response shape."""
        if isinstance(payload, list):
            return payload, None
        if not isinstance(payload, Mapping):
            return None, None

        scores = payload.get('scores')
        version = payload.get('version')
        item = payload.get('item')
        if isinstance(item, Mapping):
            # Record-shaped responses nest the partition under "item"
            if not isinstance(scores, list):
                scores = item.get('scores')
            if version is None:
                version = item.get('version')

        if not isinstance(scores, list):
            scores = None
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            version = None
        return scores, version
