"""
Shared ranking utilities for the leaderboard.

Pure functions only: normalization of untrusted payloads, qualification of a
candidate score, the one canonical ordering, and the dedup/merge rules used by
both the local and the remote write paths.
"""

import json
import math
from collections.abc import Mapping
from numbers import Real
from typing import Any, Iterable, List, Optional

from leaderboard_sync.config import Config
from leaderboard_sync.constants import EntryConstants
from leaderboard_sync.data_models.leaderboard import Entry, Qualification


class RankingEngine:
    """Shared ranking logic for consistent leaderboard ordering."""

    # Validation helpers -----------------------------------------------------

    @staticmethod
    def is_valid_score(score: Any) -> bool:
        """A submittable score is a finite real number greater than zero."""
        if isinstance(score, bool) or not isinstance(score, Real):
            return False
        return math.isfinite(score) and score > 0

    @staticmethod
    def validate_id(user_id: Any) -> str:
        """Return the initials if they are 1-3 uppercase letters, else the sentinel."""
        if isinstance(user_id, str) and EntryConstants.ID_PATTERN.fullmatch(user_id):
            return user_id
        return EntryConstants.SENTINEL_ID

    # Normalization ------------------------------------------------------------

    @staticmethod
    def normalize(raw: Any) -> List[Entry]:
        """
        Coerce untrusted input into well-typed entries.

        Returns a new list with the input's order and length preserved; anything
        that is not a list yields an empty list. The input is never mutated.
        """
        if not isinstance(raw, (list, tuple)):
            return []
        return [RankingEngine._normalize_one(item) for item in raw]

    @staticmethod
    def _normalize_one(item: Any) -> Entry:
        if isinstance(item, Entry):
            return item
        if not isinstance(item, Mapping):
            return Entry(id="", score=0)

        raw_id = item.get('id')
        raw_date = item.get('date')
        return Entry(
            id=str(raw_id) if raw_id else "",
            score=RankingEngine._coerce_score(item.get('score')),
            accuracy=RankingEngine._coerce_accuracy(item.get('accuracy')),
            date=raw_date if isinstance(raw_date, str) and raw_date else None,
            game_summary=RankingEngine._coerce_blob(item, EntryConstants.GAME_SUMMARY_ALIASES),
            ai_analysis=RankingEngine._coerce_blob(item, EntryConstants.AI_ANALYSIS_ALIASES),
        )

    @staticmethod
    def _coerce_score(value: Any) -> int:
        if isinstance(value, bool):
            return 0
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return 0
        if not isinstance(value, Real) or not math.isfinite(value):
            return 0
        return max(0, math.floor(value))

    @staticmethod
    def _coerce_accuracy(value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, Real):
            return None
        if not math.isfinite(value) or not 0 <= value <= 1:
            return None
        return float(value)

    @staticmethod
    def _coerce_blob(item: Mapping, aliases: Iterable[str]) -> Optional[str]:
        for key in aliases:
            value = item.get(key)
            if value is None:
                continue
            if isinstance(value, str):
                return value
            if isinstance(value, (dict, list)):
                try:
                    return json.dumps(value)
                except (TypeError, ValueError):
                    return None
            return None
        return None

    # Qualification ------------------------------------------------------------

    @staticmethod
    def evaluate_qualification(score: Any, entries: Any, max_entries: Optional[int] = None) -> Qualification:
        """
        Classify a candidate score against the current board.

        Any positive score qualifies while the board holds fewer than
        ``max_entries`` rows. Once full, the candidate must strictly beat the
        score of the ``max_entries``-th ranked row; ties do not qualify.
        Malformed boards fail open.
        """
        if max_entries is None:
            max_entries = Config.MAX_ENTRIES
        if not RankingEngine.is_valid_score(score):
            return Qualification.REJECTED
        if not entries:
            return Qualification.BOOTSTRAP
        if not isinstance(entries, (list, tuple)):
            return Qualification.FAIL_OPEN
        if len(entries) < max_entries:
            return Qualification.BOOTSTRAP

        scores = []
        for entry in entries:
            value = RankingEngine._score_of(entry)
            if value is None:
                return Qualification.FAIL_OPEN
            scores.append(value)

        scores.sort(reverse=True)
        cutoff = scores[max_entries - 1]
        return Qualification.ABOVE_CUTOFF if score > cutoff else Qualification.BELOW_CUTOFF

    @staticmethod
    def _score_of(entry: Any) -> Optional[float]:
        if isinstance(entry, Entry):
            value = entry.score
        elif isinstance(entry, Mapping):
            value = entry.get('score')
        else:
            return None
        if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
            return None
        return value

    @staticmethod
    def qualifies_for_initials(score: Any, entries: Any, max_entries: Optional[int] = None) -> bool:
        """Whether the player should be asked for initials."""
        return RankingEngine.evaluate_qualification(score, entries, max_entries).qualifies

    # Ordering -----------------------------------------------------------------

    @staticmethod
    def rank(entries: Iterable[Entry]) -> List[Entry]:
        """
        Full stable re-sort by score descending, id ascending.

        This is the only place leaderboard order is decided.
        """
        return sorted(entries, key=lambda entry: (-entry.score, entry.id))

    @staticmethod
    def dedup_by_max(entries: Iterable[Entry]) -> List[Entry]:
        """
        Keep one entry per id: the one with the highest score.

        The winning entry is kept whole. On equal scores the earlier entry stays.
        """
        best = {}
        for entry in entries:
            current = best.get(entry.id)
            if current is None or entry.score > current.score:
                best[entry.id] = entry
        return list(best.values())

    @staticmethod
    def build_board(entries: Iterable[Entry], max_entries: Optional[int] = None) -> List[Entry]:
        """Dedup by id, rank, and cut to capacity."""
        if max_entries is None:
            max_entries = Config.MAX_ENTRIES
        return RankingEngine.rank(RankingEngine.dedup_by_max(entries))[:max_entries]

    @staticmethod
    def merge_max_score(server_entries: Iterable[Entry], proposal: Iterable[Entry],
                        max_entries: Optional[int] = None) -> List[Entry]:
        """
        Merge the server's authoritative list with a client proposal after a conflict.

        Seeded with the server's entries; a proposed entry replaces the server's
        entry for the same id only when its score is strictly greater.
        """
        return RankingEngine.build_board([*server_entries, *proposal], max_entries)
