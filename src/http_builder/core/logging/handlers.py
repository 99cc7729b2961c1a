"""
Console and rotating file handlers.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, List, TextIO


def _apply(handler: logging.Handler, level: int, formatter: logging.Formatter,
           filters: Optional[List[logging.Filter]]) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for f in filters or ():
        handler.addFilter(f)


def create_console_handler(
    level: int,
    formatter: logging.Formatter,
    filters: Optional[List[logging.Filter]] = None,
    stream: Optional[TextIO] = None
) -> logging.StreamHandler:
    """
    Create console handler (stdout by default).

    Args:
        level: Log level (e.g. logging.DEBUG)
        formatter: Formatter instance
        filters: Filters to add
        stream: Output stream (defaults to sys.stdout)
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    _apply(handler, level, formatter, filters)
    return handler


def create_file_handler(
    file_path: str,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 5,
    filters: Optional[List[logging.Filter]] = None
) -> RotatingFileHandler:
    """
    Create rotating file handler.

    The file is rotated once it reaches ``max_bytes``; ``backup_count``
    old files are kept (``debug.txt.1``, ``debug.txt.2``, ...).
    Parent directories are created if missing.
    """
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    _apply(handler, level, formatter, filters)
    return handler
