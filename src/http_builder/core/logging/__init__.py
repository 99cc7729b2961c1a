"""
Logging system for HTTP Builder.

Example:
    >>> from http_builder.core.logging import HTTPBuilderLogger, LoggingConfig
    >>> config = LoggingConfig.create(level="DEBUG", format="colored")
    >>> logger = HTTPBuilderLogger(config)
    >>> logger.info("Request dispatched", method="GET", url="https://api.com")
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import HTTPBuilderLogger, NullLogger, get_logger
from .formatters import JSONFormatter, TextFormatter, ColoredFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "HTTPBuilderLogger",
    "NullLogger",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "ColoredFormatter",
    "get_formatter",
    # Filters
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
