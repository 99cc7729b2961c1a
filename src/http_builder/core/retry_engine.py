"""
Retry engine для повторных попыток.

Ретраятся только transport ошибки (``retryable=True``). Любой HTTP ответ,
включая 4xx/5xx, - успешный обмен, решение о статусе за вызывающим.
"""

import logging
import random
from typing import Optional

from .config import RetryConfig

logger = logging.getLogger(__name__)


class RetryEngine:
    """
    Счётчик попыток и backoff.

    Examples:
        >>> engine = RetryEngine(RetryConfig(retry_count=3))
        >>> if engine.should_retry(error):
        >>>     time.sleep(engine.get_wait_time())
        >>>     engine.increment()
    """

    def __init__(self, config: RetryConfig, rng: Optional[random.Random] = None):
        """
        Args:
            config: Конфигурация retry
            rng: Источник случайности для jitter (для тестов)
        """
        self.config = config
        self._rng = rng or random.Random()
        self._attempt = 0

    @property
    def max_attempts(self) -> int:
        """Общее количество попыток (не меньше 1)."""
        return self.config.max_attempts

    def should_retry(self, error: Exception) -> bool:
        """
        Решить нужен ли retry.

        Args:
            error: Исключение последней попытки

        Returns:
            True если ошибка retryable и попытки остались
        """
        # Проверяем, не превысит ли следующая попытка лимит
        if self._attempt + 1 >= self.max_attempts:
            return False

        # Фатальные ошибки НЕ ретраим
        if getattr(error, 'fatal', False):
            return False

        return bool(getattr(error, 'retryable', False))

    def get_wait_time(self) -> float:
        """
        Вычислить время ожидания перед следующей попыткой.

        Returns:
            Секунды: wait_time * backoff_factor ** attempt, не больше max_wait_time
        """
        wait = self.config.wait_time * (self.config.backoff_factor ** self._attempt)
        wait = min(wait, self.config.max_wait_time)

        # jitter: 50-150% от wait
        if self.config.jitter:
            wait = wait * (0.5 + self._rng.random())

        return wait

    def increment(self) -> None:
        """Увеличить счётчик попыток."""
        self._attempt += 1

    def reset(self) -> None:
        """Сбросить счётчик."""
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Текущая попытка (с нуля)."""
        return self._attempt
