"""
Leaderboard data models.

Provides immutable value objects exchanged between the repository, the ranking
engine and the sync manager.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from leaderboard_sync.constants import EntryConstants


@dataclass(frozen=True)
class Entry:
    """Single leaderboard row.

    Metadata fields are replaced as a whole together with the score; two
    entries for the same id never have their metadata combined.
    """
    id: str
    score: int
    accuracy: Optional[float] = None
    date: Optional[str] = None
    game_summary: Optional[str] = None  # JSON-encoded blob
    ai_analysis: Optional[str] = None   # JSON-encoded blob

    def to_dict(self) -> Dict[str, Any]:
        """Wire/persisted representation; optional fields omitted when unset."""
        data: Dict[str, Any] = {'id': self.id, 'score': self.score}
        if self.accuracy is not None:
            data['accuracy'] = self.accuracy
        if self.date is not None:
            data['date'] = self.date
        if self.game_summary is not None:
            data[EntryConstants.GAME_SUMMARY_KEY] = self.game_summary
        if self.ai_analysis is not None:
            data[EntryConstants.AI_ANALYSIS_KEY] = self.ai_analysis
        return data


def entries_to_dicts(entries: List[Entry]) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in entries]


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a conditional remote write.

    ok: the write was accepted.
    conflict: the server rejected a stale version; ``entries`` is the server's list.
    Neither flag set means a transport failure; ``entries`` echoes the proposal.
    """
    ok: bool
    conflict: bool
    entries: List[Entry]


class Qualification(Enum):
    """Why a candidate score does or does not qualify for initials entry."""
    REJECTED = "rejected"                # not a finite positive number
    BOOTSTRAP = "bootstrap"              # board not full yet
    ABOVE_CUTOFF = "above_cutoff"        # strictly beats the last ranked score
    BELOW_CUTOFF = "below_cutoff"        # ties or loses to the last ranked score
    FAIL_OPEN = "fail_open"              # entries malformed, never block the player

    @property
    def qualifies(self) -> bool:
        return self in (Qualification.BOOTSTRAP, Qualification.ABOVE_CUTOFF, Qualification.FAIL_OPEN)


@dataclass(frozen=True)
class DisplaySnapshot:
    """Entries to render now plus the background refresh started for them, if any."""
    entries: List[Entry]
    refresh_task: Optional["asyncio.Task"] = None
