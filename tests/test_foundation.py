"""
Tests for foundation components: configuration, constants, logging,
exceptions and the command-line entry point.
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from leaderboard_sync import main as cli
from leaderboard_sync.config import Config
from leaderboard_sync.constants import EntryConstants
from leaderboard_sync.data_models.leaderboard import Entry
from leaderboard_sync.services.storage import MemoryStorageBackend
from leaderboard_sync.utils.exceptions import (
    LeaderboardException,
    RemoteTransportError,
    StorageError,
    VersionConflictError,
)
from leaderboard_sync.utils.logger import setup_logger


class TestConfig:

    def test_defaults(self):
        assert Config.MAX_ENTRIES >= 1
        assert Config.STORAGE_KEY
        assert Config.SAVE_MAX_ATTEMPTS >= 1
        assert Config.REMOTE_TIMEOUT > 0
        assert Config.STORAGE_BACKEND in Config.STORAGE_BACKENDS

    def test_validate_accepts_defaults(self):
        Config.validate()

    @pytest.mark.parametrize("attribute,value", [
        ('MAX_ENTRIES', 0),
        ('SAVE_MAX_ATTEMPTS', 0),
        ('REMOTE_TIMEOUT', 0),
        ('REFRESH_COOLDOWN', -1),
        ('STORAGE_BACKEND', 'floppy'),
    ])
    def test_validate_rejects_bad_values(self, monkeypatch, attribute, value):
        monkeypatch.setattr(Config, attribute, value)
        with pytest.raises(ValueError):
            Config.validate()

    def test_redis_backend_requires_url(self, monkeypatch):
        monkeypatch.setattr(Config, 'STORAGE_BACKEND', 'redis')
        monkeypatch.setattr(Config, 'REDIS_URL', None)
        with pytest.raises(ValueError):
            Config.validate()

    def test_remote_mode_requires_endpoint(self, monkeypatch):
        monkeypatch.setattr(Config, 'IS_REMOTE', True)
        monkeypatch.setattr(Config, 'REMOTE_ENDPOINT', '')
        assert not Config.remote_enabled()
        with pytest.raises(ValueError):
            Config.validate()

        monkeypatch.setattr(Config, 'REMOTE_ENDPOINT', 'https://leaderboard.test/leaderboard')
        assert Config.remote_enabled()


class TestEntry:

    def test_to_dict_omits_unset_fields(self):
        assert Entry(id="A", score=1).to_dict() == {'id': "A", 'score': 1}

    def test_to_dict_uses_wire_keys(self):
        data = Entry(id="A", score=1, accuracy=0.5, date="2025-01-01", game_summary="{}", ai_analysis="[]").to_dict()
        assert data[EntryConstants.GAME_SUMMARY_KEY] == "{}"
        assert data[EntryConstants.AI_ANALYSIS_KEY] == "[]"
        assert data['accuracy'] == 0.5


class TestExceptions:

    def test_hierarchy(self):
        for error in (
            StorageError("read", "k", "disk"),
            RemoteTransportError("GET", "https://x", "timeout"),
            VersionConflictError("1", 0, 2, []),
        ):
            assert isinstance(error, LeaderboardException)
            assert error.user_message

    def test_conflict_carries_current_state(self):
        error = VersionConflictError("1", 0, 2, [{'id': "A", 'score': 1}])
        assert error.current_version == 2
        assert error.current_scores == [{'id': "A", 'score': 1}]
        assert error.user_message == "Version mismatch"


class TestLogger:

    def test_setup_logger_is_idempotent(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        logger = setup_logger('leaderboard_sync.tests.idempotent')
        handlers = list(logger.handlers)
        assert setup_logger('leaderboard_sync.tests.idempotent').handlers == handlers
        assert (tmp_path / 'logs').is_dir()
        for handler in handlers:
            handler.close()
            logger.removeHandler(handler)

    def test_explicit_log_dir(self, tmp_path):
        logger = setup_logger('leaderboard_sync.tests.log_dir', log_dir=tmp_path / 'custom')
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert list((tmp_path / 'custom').glob('leaderboard_sync_*.log'))
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_file_logging_can_be_disabled(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, 'LOG_TO_FILE', False)
        logger = setup_logger('leaderboard_sync.tests.console_only', log_dir=tmp_path / 'unused')
        assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert not (tmp_path / 'unused').exists()
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

    def test_level_follows_debug_flag(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Config, 'DEBUG', True)
        logger = setup_logger('leaderboard_sync.tests.debug')
        assert logger.level == logging.DEBUG
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


class TestCommandLine:

    def test_parser(self):
        args = cli.build_parser().parse_args(['--local', 'submit', '120', 'ABC', '--accuracy', '0.5'])
        assert args.remote is False
        assert args.command == 'submit'
        assert args.score == 120.0
        assert args.id == 'ABC'
        assert args.accuracy == 0.5

    def test_mode_defaults_to_config(self):
        assert cli.build_parser().parse_args(['show']).remote is None

    def test_submit_show_and_qualifies(self, monkeypatch, capsys):
        monkeypatch.setattr(Config, 'STORAGE_BACKEND', 'memory')
        storage = MemoryStorageBackend()
        with patch('leaderboard_sync.main.create_storage_backend', new=AsyncMock(return_value=storage)), \
                patch('leaderboard_sync.main.setup_logger'):
            assert cli.main(['--local', 'submit', '120', 'ABC']) == 0
            assert cli.main(['--local', 'show']) == 0
            assert cli.main(['--local', 'qualifies', '5']) == 0
            assert cli.main(['--local', 'submit', '-3', 'ABC']) == 1

        output = capsys.readouterr().out
        assert "Score saved" in output
        assert "🥇 ABC — 120" in output
        assert "yes (bootstrap)" in output
        assert "Score was not saved" in output
