"""
Presentation helpers for leaderboard rows.

Pure projections of already ranked entries into display strings; nothing here
touches storage or reorders entries.
"""

import math
from dataclasses import dataclass
from numbers import Real
from typing import List

from leaderboard_sync.constants import DisplayConstants
from leaderboard_sync.data_models.leaderboard import Entry
from leaderboard_sync.utils.ranking import RankingEngine


@dataclass(frozen=True)
class FormattedRow:
    """Structured and composite formatting of one row."""
    rank: int
    badge: str
    medal: str
    icon: str
    text: str
    accuracy_formatted: str
    date_formatted: str


def rank_icon(rank: int) -> str:
    """Keycap emoji for a 1-based rank outside the podium."""
    if rank == 10:
        return DisplayConstants.KEYCAP_TEN
    return "".join(DisplayConstants.KEYCAP_DIGITS[int(digit)] for digit in str(rank))


def format_accuracy(accuracy) -> str:
    if isinstance(accuracy, bool) or not isinstance(accuracy, Real) or not math.isfinite(accuracy):
        return ""
    # Round half up so 0.125 renders as 13%
    return f"{math.floor(accuracy * 100 + 0.5)}%"


def format_row(entry: Entry, index: int) -> FormattedRow:
    """Format the entry at zero-based position ``index`` of a ranked list."""
    rank = index + 1
    medal = DisplayConstants.MEDALS[index] if index < len(DisplayConstants.MEDALS) else ""
    icon = "" if medal else rank_icon(rank)
    badge = RankingEngine.validate_id(entry.id)
    accuracy_formatted = format_accuracy(entry.accuracy)
    date_formatted = entry.date or ""

    parts = [f"{medal or icon} {badge}", str(entry.score)]
    if accuracy_formatted:
        parts.append(accuracy_formatted)
    if date_formatted:
        parts.append(date_formatted)

    return FormattedRow(
        rank=rank,
        badge=badge,
        medal=medal,
        icon=icon,
        text=DisplayConstants.SEPARATOR.join(parts),
        accuracy_formatted=accuracy_formatted,
        date_formatted=date_formatted,
    )


def format_rows(entries: List[Entry]) -> List[str]:
    """Presentation strings for a ranked list, capped to keep renders bounded."""
    if not entries:
        return []
    return [
        format_row(entry, index).text
        for index, entry in enumerate(entries[:DisplayConstants.MAX_FORMATTED_ROWS])
    ]
