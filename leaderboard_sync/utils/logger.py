import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from leaderboard_sync.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _log_file(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f'leaderboard_sync_{datetime.now().strftime("%Y%m%d")}.log'


def setup_logger(name: str, log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Attach console and daily file handlers to ``name`` once.

    Child loggers obtained with ``logging.getLogger`` propagate here, so entry
    points configure the package logger and modules just ask for their own.
    File output goes to ``log_dir`` (default ``Config.LOG_DIR``) unless
    ``Config.LOG_TO_FILE`` is off.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if Config.LOG_TO_FILE:
        file_handler = logging.FileHandler(_log_file(Path(log_dir or Config.LOG_DIR)), encoding='utf-8')
        # Files always keep debug detail
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
