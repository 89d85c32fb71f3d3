import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Leaderboard configuration settings"""

    # General settings
    DEBUG = _env_bool('DEBUG', False)
    IS_REMOTE = _env_bool('LEADERBOARD_REMOTE', False)

    # Logging settings
    LOG_DIR = os.getenv('LEADERBOARD_LOG_DIR', 'logs')
    LOG_TO_FILE = _env_bool('LEADERBOARD_LOG_TO_FILE', True)

    # Board settings
    MAX_ENTRIES = int(os.getenv('LEADERBOARD_MAX_ENTRIES', 25))
    STORAGE_KEY = os.getenv('LEADERBOARD_STORAGE_KEY', 'aiHorizonLeaderboard')

    # Local storage settings
    STORAGE_BACKEND = os.getenv('LEADERBOARD_STORAGE_BACKEND', 'sqlite').lower()
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///leaderboard.db')
    REDIS_URL = os.getenv('REDIS_URL')

    # Remote settings
    REMOTE_ENDPOINT = os.getenv('LEADERBOARD_ENDPOINT', '')
    PARTITION_ID = os.getenv('LEADERBOARD_PARTITION_ID', '1')
    REMOTE_AUTH_TOKEN = os.getenv('LEADERBOARD_AUTH_TOKEN')
    REMOTE_TIMEOUT = float(os.getenv('LEADERBOARD_TIMEOUT', 8.0))

    # Synchronization settings
    SAVE_MAX_ATTEMPTS = int(os.getenv('LEADERBOARD_SAVE_ATTEMPTS', 3))
    REFRESH_COOLDOWN = float(os.getenv('LEADERBOARD_REFRESH_COOLDOWN', 30.0))  # seconds
    LOCAL_FALLBACK = _env_bool('LEADERBOARD_LOCAL_FALLBACK', True)

    STORAGE_BACKENDS = ('sqlite', 'redis', 'memory')

    @classmethod
    def remote_enabled(cls) -> bool:
        """Remote mode needs both the flag and an endpoint"""
        return cls.IS_REMOTE and bool(cls.REMOTE_ENDPOINT)

    @classmethod
    def validate(cls):
        """Validate that configuration values are usable"""
        if cls.MAX_ENTRIES < 1:
            raise ValueError("LEADERBOARD_MAX_ENTRIES must be at least 1")
        if cls.SAVE_MAX_ATTEMPTS < 1:
            raise ValueError("LEADERBOARD_SAVE_ATTEMPTS must be at least 1")
        if cls.REMOTE_TIMEOUT <= 0:
            raise ValueError("LEADERBOARD_TIMEOUT must be positive")
        if cls.REFRESH_COOLDOWN < 0:
            raise ValueError("LEADERBOARD_REFRESH_COOLDOWN cannot be negative")
        if cls.STORAGE_BACKEND not in cls.STORAGE_BACKENDS:
            raise ValueError(
                f"LEADERBOARD_STORAGE_BACKEND must be one of {', '.join(cls.STORAGE_BACKENDS)}"
            )
        if cls.STORAGE_BACKEND == 'redis' and not cls.REDIS_URL:
            raise ValueError("REDIS_URL is required for the redis storage backend")
        if cls.IS_REMOTE and not cls.REMOTE_ENDPOINT:
            raise ValueError("LEADERBOARD_ENDPOINT is required when LEADERBOARD_REMOTE is enabled")
