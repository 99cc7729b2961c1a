"""
Main logger for HTTP Builder.

``HTTPBuilderLogger`` wraps a stdlib logger with console / rotating file
handlers and masks sensitive values in extra fields. ``NullLogger`` is the
no-op default injected into the execution engine and the negotiator.
"""

import logging
from typing import Optional, Any, Dict

from .config import LoggingConfig, LogLevel
from .formatters import get_formatter
from .filters import CorrelationIdFilter, ExtraFieldsFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data


class HTTPBuilderLogger:
    """
    Logger with structured extra fields.

    Example:
        >>> logger = HTTPBuilderLogger(LoggingConfig.create(level="DEBUG"))
        >>> logger.info("Request dispatched", method="GET", url="https://api.com")
    """

    def __init__(
        self,
        config: Optional[LoggingConfig] = None,
        name: str = "http_builder",
        stream=None
    ):
        """
        Args:
            config: Logging configuration (defaults if None)
            name: Logger name
            stream: Console stream override (stdout by default)
        """
        self.config = config or LoggingConfig()
        self.name = name
        self._closed = False

        self._logger = logging.getLogger(name)
        self._logger.setLevel(self._get_level(self.config.level))
        self._logger.propagate = False

        # Переинициализация - убираем старые handlers
        for handler in self._logger.handlers[:]:
            self._logger.removeHandler(handler)
            handler.close()

        filters = []
        if self.config.enable_correlation_id:
            filters.append(CorrelationIdFilter())
        if self.config.extra_fields:
            filters.append(ExtraFieldsFilter(self.config.extra_fields))

        formatter = get_formatter(self.config.format.value)
        level = self._get_level(self.config.level)

        if self.config.enable_console:
            self._logger.addHandler(create_console_handler(
                level=level,
                formatter=formatter,
                filters=filters,
                stream=stream
            ))

        if self.config.enable_file and self.config.file_path:
            self._logger.addHandler(create_file_handler(
                file_path=self.config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=self.config.max_bytes,
                backup_count=self.config.backup_count,
                filters=filters
            ))

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    @property
    def logger(self) -> logging.Logger:
        """Underlying stdlib logger."""
        return self._logger

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, message: str, fields: Dict[str, Any], exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, message, extra=mask_sensitive_data(fields), exc_info=exc_info)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with extra fields."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message with extra fields."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with extra fields."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """
        Log error message.

        Example:
            >>> logger.error("URL parse failed", operation="resolve_url", url="::")
        """
        self._log(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log error with traceback; call from an except block."""
        self._log(logging.ERROR, message, kwargs, exc_info=True)

    def close(self) -> None:
        """
        Flush and close all handlers. Idempotent.
        """
        if self._closed:
            return

        for handler in self._logger.handlers[:]:
            try:
                handler.flush()
                handler.close()
            except (OSError, ValueError):
                pass
            self._logger.removeHandler(handler)

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class NullLogger:
    """Logger with the HTTPBuilderLogger interface that drops everything."""

    name = "null"

    def is_enabled_for(self, level: int) -> bool:
        return False

    def debug(self, message: str, **kwargs: Any) -> None:
        pass

    def info(self, message: str, **kwargs: Any) -> None:
        pass

    def warning(self, message: str, **kwargs: Any) -> None:
        pass

    def error(self, message: str, **kwargs: Any) -> None:
        pass

    def exception(self, message: str, **kwargs: Any) -> None:
        pass

    def close(self) -> None:
        pass

    def __bool__(self) -> bool:
        return False


def get_logger(config: Optional[LoggingConfig] = None, name: str = "http_builder") -> HTTPBuilderLogger:
    """
    Create a logger from config.

    Example:
        >>> logger = get_logger(LoggingConfig.create(level="DEBUG", format="json"))
    """
    return HTTPBuilderLogger(config, name=name)
