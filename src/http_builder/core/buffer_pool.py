# src/http_builder/core/buffer_pool.py
"""
Пул буферов для staging исходящих body.

Free-list принадлежит ExecutionEngine и живёт вместе с ним. Буфер
выдаётся через context manager и возвращается на любом пути выхода,
включая исключения.
"""

import io
import threading
from contextlib import contextmanager
from typing import Iterator, List

from .exceptions import ConfigurationError


class BufferPool:
    """
    Free-list из ``io.BytesIO``.

    Args:
        max_size: Сколько свободных буферов держать (лишние выбрасываются)

    Example:
        >>> pool = BufferPool(max_size=8)
        >>> with pool.acquire() as buf:
        ...     buf.write(b"payload")
        ...     data = buf.getvalue()
    """

    def __init__(self, max_size: int = 64):
        if max_size < 0:
            raise ConfigurationError("max_size must be non-negative")
        self.max_size = max_size
        self._free: List[io.BytesIO] = []
        self._in_use = 0
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator[io.BytesIO]:
        """Выдать чистый буфер; вернуть его в пул после выхода из блока."""
        with self._lock:
            buffer = self._free.pop() if self._free else io.BytesIO()
            self._in_use += 1
        try:
            yield buffer
        finally:
            # Сброс до возврата в пул
            buffer.seek(0)
            buffer.truncate(0)
            with self._lock:
                self._in_use -= 1
                if len(self._free) < self.max_size:
                    self._free.append(buffer)

    @property
    def size(self) -> int:
        """Свободных буферов в пуле."""
        with self._lock:
            return len(self._free)

    @property
    def in_use(self) -> int:
        """Выданных и ещё не возвращённых буферов."""
        with self._lock:
            return self._in_use

    def clear(self) -> None:
        """Выбросить свободные буферы."""
        with self._lock:
            self._free.clear()
