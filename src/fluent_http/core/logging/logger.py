"""
Structured logger of an HTTPClient.
"""

import logging
from typing import Optional, Any

from .config import LoggingConfig, LogLevel
from .formatters import get_formatter
from .filters import RequestIdFilter, ExtraFieldsFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data


class ClientLogger:
    """
    Logger with keyword fields; every field is passed through
    ``mask_sensitive_data`` before it reaches a handler.

    Without a config the logger owns no handlers and propagates to the
    ``fluent_http`` logger hierarchy, so applications configure it with
    the usual ``logging`` machinery. With a config it gets its own
    console/file handlers and stops propagating.

    Example:
        >>> logger = ClientLogger(LoggingConfig.create(level="DEBUG", format="json"))
        >>> logger.info("Request started", method="GET", url="https://api.com")
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = "fluent_http.client"):
        """
        Args:
            config: Logging configuration (None = propagate to parent loggers)
            name: Logger name
        """
        self.config = config
        self.name = name
        self._closed = False
        self._preview_limit = 300
        self._logger = logging.getLogger(name)

        if config is None:
            return

        self._logger.setLevel(self._get_level(config.level))
        self._logger.propagate = False
        self._logger.handlers.clear()

        filters = []
        if config.enable_request_id:
            filters.append(RequestIdFilter())
        if config.extra_fields:
            filters.append(ExtraFieldsFilter(config.extra_fields))

        formatter = get_formatter(config.format.value)
        level = self._get_level(config.level)

        if config.enable_console:
            self._logger.addHandler(create_console_handler(level, formatter, filters))

        if config.enable_file and config.file_path:
            self._logger.addHandler(create_file_handler(
                file_path=config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=config.max_bytes,
                backup_count=config.backup_count,
                filters=filters
            ))

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    @property
    def body_preview_limit(self) -> int:
        return self.config.body_preview_limit if self.config else self._preview_limit

    def child(self, suffix: str) -> 'ClientLogger':
        """
        Logger named ``<name>.<suffix>`` without handlers of its own.

        Its records propagate to this logger's handlers; closing or
        reconfiguring the child leaves them untouched.

        Example:
            >>> clone_logger = client.logger.child("clone-1")
        """
        child = ClientLogger(name=f"{self.name}.{suffix}")
        child._preview_limit = self.body_preview_limit
        return child

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, message: str, fields: dict, exc_info: bool = False) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra=mask_sensitive_data(fields), exc_info=exc_info)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """
        Example:
            >>> logger.info("Request completed", status_code=200, duration_ms=150)
        """
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at ERROR with the current exception's traceback."""
        self._log(logging.ERROR, message, kwargs, exc_info=True)

    def close(self) -> None:
        """
        Flush and close own handlers. Idempotent.

        A logger without config owns no handlers; closing it is a no-op.
        """
        if self._closed or self.config is None:
            self._closed = True
            return

        for handler in self._logger.handlers[:]:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
