"""
Value-конфиги для HTTP Builder.

Все конфиги здесь immutable (frozen dataclasses) - их можно безопасно
разделять между потоками. Изменяемое общее состояние (заголовки, query
параметры, куки) живёт в Client и защищено lock'ом.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from .exceptions import ConfigurationError

DEFAULT_RETRY_COUNT = 3
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENT = 500

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Конфигурация таймаутов.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)

    Examples:
        >>> TimeoutConfig(connect=5, read=30)
        >>> TimeoutConfig.from_value(10)
    """
    connect: float = DEFAULT_TIMEOUT
    read: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ConfigurationError("connect timeout must be positive")
        if self.read <= 0:
            raise ConfigurationError("read timeout must be positive")

    def as_tuple(self) -> Tuple[float, float]:
        """Вернуть как (connect, read) для requests."""
        return (self.connect, self.read)

    @property
    def total(self) -> float:
        """Верхняя граница одной попытки."""
        return self.connect + self.read

    @classmethod
    def from_value(
        cls,
        timeout: Union[int, float, Tuple[float, float], 'TimeoutConfig']
    ) -> 'TimeoutConfig':
        """
        Собрать конфиг из числа, пары (connect, read) или готового конфига.
        """
        if isinstance(timeout, TimeoutConfig):
            return timeout
        if isinstance(timeout, tuple):
            return cls(connect=timeout[0], read=timeout[1])
        return cls(connect=timeout, read=timeout)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RETRY CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RetryConfig:
    """
    Конфигурация retry стратегии.

    Ретраятся только transport ошибки; любой полученный HTTP ответ
    (включая 4xx/5xx) считается успешным обменом.

    Args:
        retry_count: Общее количество попыток (включая первую)
        wait_time: Базовая задержка между попытками (сек)
        backoff_factor: Множитель для exponential backoff
        max_wait_time: Максимальная задержка (сек)
        jitter: Добавлять случайность (против thundering herd)

    Examples:
        >>> RetryConfig(retry_count=3, wait_time=0.5)
        >>> RetryConfig(retry_count=5, max_wait_time=10)
    """
    retry_count: int = DEFAULT_RETRY_COUNT
    wait_time: float = 0.1
    backoff_factor: float = 2.0
    max_wait_time: float = 2.0
    jitter: bool = False

    def __post_init__(self):
        """Валидация."""
        if self.retry_count < 0:
            raise ConfigurationError("retry_count must be non-negative")
        if self.wait_time < 0:
            raise ConfigurationError("wait_time must be non-negative")
        if self.backoff_factor < 1:
            raise ConfigurationError("backoff_factor must be >= 1")
        if self.max_wait_time < 0:
            raise ConfigurationError("max_wait_time must be non-negative")

    @property
    def max_attempts(self) -> int:
        """Количество попыток; 0 (не задано) означает одну попытку."""
        return self.retry_count if self.retry_count > 0 else 1

    def with_retry_count(self, retry_count: int) -> 'RetryConfig':
        """Новый конфиг с другим количеством попыток."""
        return replace(self, retry_count=retry_count)

    def with_wait_time(self, wait_time: float) -> 'RetryConfig':
        """Новый конфиг с другой базовой задержкой."""
        return replace(self, wait_time=wait_time)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _default_per_host() -> int:
    return (os.cpu_count() or 1) + 1


@dataclass(frozen=True)
class TransportConfig:
    """
    Настройки, которые core передаёт transport'у.

    Сам пул соединений, TLS и HTTP/2 реализует transport - здесь только
    параметры.

    Args:
        max_idle_connections: Максимум idle соединений в пуле
        max_idle_connections_per_host: Максимум idle соединений на хост
        keep_alive: Keep-alive интервал (сек)
        idle_connection_timeout: Сколько держать idle соединение (сек)
        proxy: URL прокси (None = из окружения, если trust_env)
        trust_env: Брать прокси из переменных окружения
        verify_ssl: Проверять SSL сертификаты
        allow_redirects: Следовать редиректам
        http2: Разрешить HTTP/2 (если transport умеет)

    Examples:
        >>> TransportConfig(proxy="http://127.0.0.1:8080")
        >>> TransportConfig(max_idle_connections=20, http2=True)
    """
    max_idle_connections: int = 100
    max_idle_connections_per_host: int = 0
    keep_alive: float = 30.0
    idle_connection_timeout: float = 90.0
    proxy: Optional[str] = None
    trust_env: bool = True
    verify_ssl: bool = True
    allow_redirects: bool = True
    http2: bool = False

    def __post_init__(self):
        """Валидация и дефолт per-host лимита."""
        if self.max_idle_connections <= 0:
            raise ConfigurationError("max_idle_connections must be positive")
        if self.max_idle_connections_per_host < 0:
            raise ConfigurationError("max_idle_connections_per_host must be non-negative")
        if self.max_idle_connections_per_host == 0:
            object.__setattr__(self, 'max_idle_connections_per_host', _default_per_host())
        if self.keep_alive < 0:
            raise ConfigurationError("keep_alive must be non-negative")
        if self.idle_connection_timeout < 0:
            raise ConfigurationError("idle_connection_timeout must be non-negative")

    def with_proxy(self, proxy: Optional[str]) -> 'TransportConfig':
        """Новый конфиг с другим прокси."""
        return replace(self, proxy=proxy)
