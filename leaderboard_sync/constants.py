"""
Leaderboard-wide constants.

This module contains the magic numbers and fixed values shared by the ranking,
synchronization and presentation code.
"""

import re


class EntryConstants:
    """Constants related to leaderboard entries."""

    # Initials are 1-3 uppercase ASCII letters
    ID_PATTERN = re.compile(r'[A-Z]{1,3}')

    # Substituted for identifiers that fail validation
    SENTINEL_ID = "???"

    # Wire keys for the opaque metadata blobs (stored as JSON strings)
    GAME_SUMMARY_KEY = "game-summary"
    AI_ANALYSIS_KEY = "ai-analysis"

    # Accepted input aliases for the metadata blobs
    GAME_SUMMARY_ALIASES = ("game-summary", "gameSummary", "game_summary")
    AI_ANALYSIS_ALIASES = ("ai-analysis", "aiAnalysis", "ai_analysis")


class SyncConstants:
    """Constants for remote synchronization."""

    # Version assumed for legacy payloads that carry none
    LEGACY_VERSION = 0

    # HTTP statuses with protocol meaning
    STATUS_OK = 200
    STATUS_CONFLICT = 409


class DisplayConstants:
    """Constants for presentation formatting."""

    MEDALS = ("🥇", "🥈", "🥉")

    # Keycap emoji per digit; 10 has a dedicated glyph
    KEYCAP_DIGITS = ("0️⃣", "1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣")
    KEYCAP_TEN = "🔟"

    SEPARATOR = " — "

    # Upper bound of rows produced for a single render
    MAX_FORMATTED_ROWS = 100

    EMPTY_BOARD_TEXT = "No scores yet"
