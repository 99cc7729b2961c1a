# src/http_builder/core/debug.py
"""
Debug sink: структурированные записи о каждом обмене.

Core только собирает записи и отдаёт их sink'у; форматирование, ротация
файлов и место вывода - дело sink'а.

Request record::

    {method, host, path, url, headers, cookies, body}

Response record::

    {status_code, status, headers, cookies, body}
"""

import json
from typing import Any, Dict, Optional

from .logging import HTTPBuilderLogger, LoggingConfig
from .logging.config import DEBUG_FILE_MAX_BYTES

NO_BODY = "this request has no body"


class DebugSink:
    """Базовый sink (протокол): переопределите нужные методы."""

    def on_request(self, record: Dict[str, Any]) -> None:
        """Запрос собран и уходит в transport."""

    def on_response(self, record: Dict[str, Any]) -> None:
        """Обмен завершён."""

    def close(self) -> None:
        """Освободить ресурсы sink'а."""


class NullDebugSink(DebugSink):
    """No-op sink по умолчанию."""

    def __bool__(self) -> bool:
        return False


def _pretty(body: Any) -> Any:
    """Pretty-print JSON тела, остальное как есть."""
    if not isinstance(body, str):
        return body
    stripped = body.strip()
    if not stripped or stripped[0] not in "{[":
        return body
    try:
        return json.dumps(json.loads(stripped), indent=2, ensure_ascii=False)
    except ValueError:
        return body


class LoggerDebugSink(DebugSink):
    """
    Пишет записи через HTTPBuilderLogger на уровне DEBUG.

    Args:
        logger: Логгер (по умолчанию colored вывод в консоль)
        owns_logger: Закрывать логгер в ``close()``

    Example:
        >>> sink = LoggerDebugSink.to_file("debug")   # debug.txt, ротация 1 MB
        >>> client.set_debug_sink(sink)
    """

    def __init__(
        self,
        logger: Optional[HTTPBuilderLogger] = None,
        owns_logger: bool = False
    ):
        if logger is None:
            logger = HTTPBuilderLogger(LoggingConfig.debug_console(), name="http_builder.debug")
            owns_logger = True
        self.logger = logger
        self._owns_logger = owns_logger

    @classmethod
    def to_file(cls, filename: str, max_bytes: int = DEBUG_FILE_MAX_BYTES) -> 'LoggerDebugSink':
        """
        Sink с записью в ``<filename>.txt`` с ротацией.

        Args:
            filename: Имя файла без расширения
            max_bytes: Порог ротации
        """
        config = LoggingConfig.debug_file(filename, max_bytes)
        return cls(HTTPBuilderLogger(config, name=f"http_builder.debug.{filename}"), owns_logger=True)

    def on_request(self, record: Dict[str, Any]) -> None:
        self.logger.debug(
            "HTTP request",
            http_method=record.get("method"),
            host=record.get("host"),
            url_path=record.get("path"),
            url=record.get("url"),
            headers=record.get("headers"),
            cookies=record.get("cookies"),
            body=_pretty(record.get("body")),
        )

    def on_response(self, record: Dict[str, Any]) -> None:
        self.logger.debug(
            "HTTP response",
            status_code=record.get("status_code"),
            status=record.get("status"),
            headers=record.get("headers"),
            cookies=record.get("cookies"),
            body=_pretty(record.get("body")),
        )

    def close(self) -> None:
        if self._owns_logger:
            self.logger.close()


__all__ = ["DebugSink", "NullDebugSink", "LoggerDebugSink", "NO_BODY"]
