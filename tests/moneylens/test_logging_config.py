"""Tests for centralized logging configuration."""

import logging
import sys
from collections.abc import Generator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import pytest

from moneylens.config import LoggingConfig as LoggingSettings
from moneylens.logging.config import LoggingConfig, get_log_config_summary, setup_logging


def _force_config(**overrides: Any) -> LoggingConfig:
    """Return a LoggingConfig that forces handler replacement."""
    return LoggingConfig(force_reconfigure=True, **overrides)


def _stream_handlers() -> list[logging.StreamHandler]:
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.fixture(autouse=True)
    def _reset_root_logger(self) -> Generator[None, Any, None]:
        """Remove handlers added during each test to avoid leaking state."""
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        yield
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)

    @pytest.mark.unit
    def test_console_handler_uses_stderr(self) -> None:
        """Console output must stay off stdout, where `db query` writes results."""
        setup_logging(config=_force_config(), cli_mode=False)

        handlers = _stream_handlers()
        assert handlers, "Expected at least one StreamHandler"
        for h in handlers:
            stream: object = getattr(cast(Any, h), "stream", None)
            assert stream is sys.stderr

    @pytest.mark.unit
    def test_cli_mode_uses_bare_message_format(self) -> None:
        setup_logging(config=_force_config(), cli_mode=True)

        formatter = _stream_handlers()[0].formatter
        assert formatter is not None
        assert formatter._fmt == "%(message)s"

    @pytest.mark.unit
    def test_verbose_enables_debug(self) -> None:
        setup_logging(config=_force_config(level="WARNING"), verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_configured_level(self) -> None:
        setup_logging(config=_force_config(level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.unit
    def test_file_logging_adds_rotating_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "moneylens.log"
        setup_logging(
            config=_force_config(
                log_to_file=True, log_file_path=log_file, max_file_size_mb=1, backup_count=2
            )
        )

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024 * 1024
        assert file_handlers[0].backupCount == 2
        assert log_file.parent.is_dir()

    @pytest.mark.unit
    def test_noisy_loggers_quieted(self) -> None:
        setup_logging(config=_force_config(), verbose=True)
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING


class TestLoggingConfigSources:
    """LoggingConfig built from the environment and from settings."""

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("LOG_BACKUP_COUNT", "3")

        config = LoggingConfig.from_environment()

        assert config.level == "DEBUG"
        assert config.log_to_file is True
        assert config.backup_count == 3

    @pytest.mark.unit
    def test_from_settings(self) -> None:
        section = LoggingSettings(level="ERROR", log_to_file=True, backup_count=7)

        config = LoggingConfig.from_settings(section, force_reconfigure=True)

        assert config.level == "ERROR"
        assert config.log_to_file is True
        assert config.backup_count == 7
        assert config.force_reconfigure is True

    @pytest.mark.unit
    def test_summary(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_TO_FILE", raising=False)
        summary = get_log_config_summary()

        assert summary["log_to_file"] is False
        assert "handlers" in summary
