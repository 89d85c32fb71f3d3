"""
Leaderboard synchronization service.

Owns the cached board, deduplicates concurrent loads, applies optimistic
updates and runs the bounded merge-and-retry loop for conflicting remote
writes. Every public coroutine resolves to a safe value; nothing here raises
into the game loop.
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from leaderboard_sync.config import Config
from leaderboard_sync.constants import EntryConstants
from leaderboard_sync.data_models.leaderboard import DisplaySnapshot, Entry
from leaderboard_sync.services.repository import LeaderboardRepository
from leaderboard_sync.utils.ranking import RankingEngine

logger = logging.getLogger(__name__)

Listener = Callable[[List[Entry]], Any]


def should_refresh(now: float, last_sync: Optional[float], cooldown: float) -> bool:
    """Whether enough time has passed since the last remote sync to refresh again."""
    if last_sync is None:
        return True
    return now - last_sync > cooldown


class SyncManager:
    """Service for loading, saving and submitting leaderboard entries."""

    def __init__(
        self,
        repository: LeaderboardRepository,
        is_remote: Optional[bool] = None,
        max_entries: Optional[int] = None,
        max_save_attempts: Optional[int] = None,
        refresh_cooldown: Optional[float] = None,
        local_fallback: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._repository = repository
        self.is_remote = is_remote if is_remote is not None else Config.remote_enabled()
        self.max_entries = max_entries if max_entries is not None else Config.MAX_ENTRIES
        self.max_save_attempts = max_save_attempts if max_save_attempts is not None else Config.SAVE_MAX_ATTEMPTS
        self.refresh_cooldown = refresh_cooldown if refresh_cooldown is not None else Config.REFRESH_COOLDOWN
        self.local_fallback = local_fallback if local_fallback is not None else Config.LOCAL_FALLBACK
        self._clock = clock

        self._cache: Optional[List[Entry]] = None
        self._pending_load: Optional[asyncio.Future] = None
        self._last_remote_sync: Optional[float] = None
        self._listeners: List[Listener] = []
        # Background task tracking for proper lifecycle management
        self._background_tasks: set = set()

    # Cached state -------------------------------------------------------------

    @property
    def version(self) -> Optional[int]:
        return self._repository.version

    @property
    def last_remote_sync(self) -> Optional[float]:
        return self._last_remote_sync

    def get_cached(self) -> Optional[List[Entry]]:
        """Copy of the cached board, or None before the first load."""
        return list(self._cache) if self._cache is not None else None

    def high_score(self) -> int:
        return max((entry.score for entry in self._cache or []), default=0)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new board whenever a save changes the cache."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, entries: List[Entry]):
        self._cache = list(entries)
        for listener in list(self._listeners):
            try:
                listener(list(self._cache))
            except Exception as e:
                logger.error(f"Leaderboard listener {listener!r} failed: {e}", exc_info=True)

    def _resolve_remote(self, remote: Optional[bool]) -> bool:
        return self.is_remote if remote is None else remote

    # Load ---------------------------------------------------------------------

    async def load(self, remote: Optional[bool] = None) -> List[Entry]:
        """
        Load the board, locally or from the remote partition.

        Concurrent callers share one in-flight load. A local load is served from
        the cache once one exists.
        """
        remote = self._resolve_remote(remote)

        if self._pending_load is not None:
            return list(await asyncio.shield(self._pending_load))

        if not remote and self._cache is not None:
            return list(self._cache)

        task = asyncio.ensure_future(self._load(remote))
        self._pending_load = task
        return list(await asyncio.shield(task))

    async def _load(self, remote: bool) -> List[Entry]:
        try:
            if remote:
                entries = await self._repository.load_remote()
                self._last_remote_sync = self._clock()
                if self._repository.remote_read_failed and self._cache is not None:
                    logger.info("Remote leaderboard unreachable, keeping cached board")
                    return list(self._cache)
            else:
                entries = await self._repository.load_local()
            self._cache = list(entries)
            logger.debug(f"Loaded {len(entries)} leaderboard entries ({'remote' if remote else 'local'})")
            return list(entries)
        finally:
            self._pending_load = None

    # Save ---------------------------------------------------------------------

    async def save(self, entries: List[Entry], remote: Optional[bool] = None) -> bool:
        """
        Persist a ranked board.

        Remote saves update the cache optimistically, then retry conflicting
        writes with a max-score merge of the server's list and ``entries``.
        Returns whether the final attempt succeeded.
        """
        remote = self._resolve_remote(remote)
        payload = list(entries)[:self.max_entries]

        if not remote:
            ok = await self._repository.save_local(payload)
            if ok:
                self._publish(payload)
            else:
                logger.warning("Local leaderboard save failed")
            return ok

        self._publish(payload)

        proposal = payload
        result = None
        for attempt in range(1, self.max_save_attempts + 1):
            result = await self._repository.save_remote(proposal)
            if result.ok:
                self._last_remote_sync = self._clock()
                break
            if not result.conflict:
                logger.warning(f"Remote leaderboard save failed on attempt {attempt}, not retrying")
                break
            if attempt < self.max_save_attempts:
                proposal = RankingEngine.merge_max_score(result.entries, payload, self.max_entries)
                logger.info(
                    f"Leaderboard write conflict on attempt {attempt}, "
                    f"retrying with {len(proposal)} merged entries at version {self.version}"
                )
        else:
            logger.warning(f"Leaderboard write still conflicting after {self.max_save_attempts} attempts")

        final = result.entries
        if not result.ok and not result.conflict and self.local_fallback:
            # Offline: merge into the board kept on this device
            stored = await self._repository.load_local()
            final = RankingEngine.build_board([*stored, *result.entries], self.max_entries)
            await self._repository.save_local(final)

        self._publish(final)
        return result.ok

    # Submit -------------------------------------------------------------------

    async def submit(
        self,
        score: Any,
        user_id: Any,
        remote: Optional[bool] = None,
        accuracy: Optional[float] = None,
        game_summary: Any = None,
        ai_analysis: Any = None,
        date: Optional[str] = None,
    ) -> bool:
        """
        Submit a final score under the player's initials.

        Invalid scores are rejected before any I/O; invalid initials are stored
        as the sentinel id. The board keeps one entry per id, the highest.
        """
        if not RankingEngine.is_valid_score(score):
            logger.debug(f"Rejected leaderboard submission with score {score!r}")
            return False

        remote = self._resolve_remote(remote)
        candidate = RankingEngine.normalize([{
            'id': RankingEngine.validate_id(user_id),
            'score': math.floor(score),
            'accuracy': accuracy,
            'date': date or datetime.now(timezone.utc).date().isoformat(),
            EntryConstants.GAME_SUMMARY_KEY: game_summary,
            EntryConstants.AI_ANALYSIS_KEY: ai_analysis,
        }])[0]

        current = await self.load(remote=remote)
        board = RankingEngine.build_board([*current, candidate], self.max_entries)
        return await self.save(board, remote=remote)

    # Background refresh -------------------------------------------------------

    def refresh_if_stale(self, now: Optional[float] = None) -> Optional[asyncio.Future]:
        """
        Start a non-blocking remote load when the cooldown has elapsed.

        Returns the task doing the refresh (an already pending load if there is
        one), or None when no refresh is due. Must be called from a running loop.
        """
        if not self.is_remote:
            return None
        if self._pending_load is not None:
            return self._pending_load

        now = self._clock() if now is None else now
        if not should_refresh(now, self._last_remote_sync, self.refresh_cooldown):
            return None

        task = asyncio.create_task(self.load(remote=True))
        self._background_tasks.add(task)
        # Remove task from set when it completes to prevent memory leaks
        task.add_done_callback(self._background_tasks.discard)
        logger.debug("Triggered background leaderboard refresh")
        return task

    def get_display_entries(self) -> DisplaySnapshot:
        """Cached entries for rendering now, plus any refresh started for them."""
        entries = list(self._cache) if self._cache is not None else []
        return DisplaySnapshot(entries=entries, refresh_task=self.refresh_if_stale())

    async def cleanup(self):
        """Cancel and await background refreshes for graceful shutdown."""
        if self._background_tasks:
            logger.info(f"Waiting for {len(self._background_tasks)} background tasks to complete...")
            for task in self._background_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
            self._background_tasks.clear()
            logger.info("All background tasks cleaned up.")
