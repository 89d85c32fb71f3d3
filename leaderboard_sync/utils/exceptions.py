"""
Custom exceptions for the leaderboard synchronization engine.

Raised inside backends and the partition store; the client-facing layers
convert them into safe default values instead of letting them escape.
"""

from typing import List, Optional


class LeaderboardException(Exception):
    """Base exception for leaderboard-related errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class StorageError(LeaderboardException):
    """Raised when the local key/value store cannot be read or written."""
    def __init__(self, operation: str, key: str, details: str = None):
        super().__init__(
            f"Storage error during {operation} of '{key}': {details}",
            "Leaderboard storage is unavailable."
        )
        self.operation = operation
        self.key = key

class RemoteTransportError(LeaderboardException):
    """Raised when the remote endpoint cannot be reached or answers unusably."""
    def __init__(self, method: str, url: str, details: str = None, status_code: Optional[int] = None):
        super().__init__(
            f"{method} {url} failed: {details}",
            "Online leaderboard is unavailable."
        )
        self.method = method
        self.url = url
        self.status_code = status_code

class PartitionNotFoundError(LeaderboardException):
    """Raised when a leaderboard partition does not exist."""
    def __init__(self, partition_id: str):
        super().__init__(
            f"Partition '{partition_id}' not found",
            f"Leaderboard '{partition_id}' does not exist."
        )
        self.partition_id = partition_id

class VersionConflictError(LeaderboardException):
    """Raised when a conditional write names a stale version."""
    def __init__(self, partition_id: str, expected_version: int, current_version: int,
                 current_scores: List[dict]):
        super().__init__(
            f"Version mismatch on partition '{partition_id}': "
            f"expected {expected_version}, current {current_version}",
            "Version mismatch"
        )
        self.partition_id = partition_id
        self.expected_version = expected_version
        self.current_version = current_version
        self.current_scores = current_scores

class ScoreValidationError(LeaderboardException):
    """Raised when a request body fails validation."""
    def __init__(self, reason: str):
        super().__init__(
            f"Invalid leaderboard payload: {reason}",
            reason
        )
