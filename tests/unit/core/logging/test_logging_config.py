"""
Tests for LoggingConfig and handlers.
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from fluent_http.core.logging import (
    LogFormat,
    LoggingConfig,
    LogLevel,
    TextFormatter,
    create_console_handler,
    create_file_handler,
)
from fluent_http.core.logging.filters import RequestIdFilter


class TestLoggingConfig:
    def test_defaults(self):
        config = LoggingConfig()

        assert config.level is LogLevel.INFO
        assert config.format is LogFormat.TEXT
        assert config.enable_console is True
        assert config.enable_file is False
        assert config.enable_request_id is True
        assert config.body_preview_limit == 300

    def test_create_from_strings(self):
        config = LoggingConfig.create(level="debug", format="JSON", extra_fields={"service": "x"})

        assert config.level is LogLevel.DEBUG
        assert config.format is LogFormat.JSON
        assert config.extra_fields == {"service": "x"}

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            LoggingConfig.create(level="VERBOSE")

    def test_file_requires_path(self):
        with pytest.raises(ValueError, match="file_path"):
            LoggingConfig(enable_file=True)

    def test_negative_preview_limit(self):
        with pytest.raises(ValueError):
            LoggingConfig(body_preview_limit=-1)


class TestHandlers:
    def test_console_handler(self):
        log_filter = RequestIdFilter()
        handler = create_console_handler(logging.INFO, TextFormatter(), [log_filter])

        assert handler.level == logging.INFO
        assert isinstance(handler.formatter, TextFormatter)
        assert handler.filters == [log_filter]

    def test_file_handler_creates_directory(self, tmp_path):
        path = tmp_path / "nested" / "logs" / "client.log"
        handler = create_file_handler(
            str(path), logging.DEBUG, TextFormatter(), max_bytes=1024, backup_count=2
        )
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 1024
            assert handler.backupCount == 2
            assert path.parent.is_dir()
        finally:
            handler.close()

    def test_file_handler_rotates(self, tmp_path):
        path = tmp_path / "client.log"
        handler = create_file_handler(
            str(path), logging.DEBUG, TextFormatter(), max_bytes=200, backup_count=1
        )
        logger = logging.getLogger("fluent_http.client.rotation")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        for i in range(20):
            logger.info("line %d with some padding to fill the file", i)

        assert (tmp_path / "client.log.1").exists()
