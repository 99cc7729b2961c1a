"""
Logging configuration for HTTP Builder.

Frozen dataclasses, same as the rest of the value configs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

DEBUG_FILE_MAX_BYTES = 1024 * 1024


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"
    COLORED = "colored"


@dataclass(frozen=True)
class LoggingConfig:
    """
    Куда и как HTTPBuilderLogger пишет записи.

    Attributes:
        level: Минимальный уровень
        format: json, text или colored
        enable_console: Писать в stdout (или в переданный stream)
        enable_file: Писать в файл с ротацией
        file_path: Путь к файлу (обязателен при enable_file)
        max_bytes: Порог ротации файла (1 MB, как у debug файлов)
        backup_count: Сколько ротированных файлов хранить
        enable_correlation_id: Подставлять correlation_id запроса
        extra_fields: Статические поля для каждой записи

    Example:
        >>> LoggingConfig.create(level="WARNING", format="json")
        >>> LoggingConfig.debug_file("requests")   # requests.txt
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    enable_console: bool = True
    enable_file: bool = False
    file_path: Optional[str] = None
    max_bytes: int = DEBUG_FILE_MAX_BYTES
    backup_count: int = 5
    enable_correlation_id: bool = True
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.enable_file and not self.file_path:
            raise ValueError("file_path is required when enable_file=True")
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count must be non-negative")

    @classmethod
    def create(
        cls,
        level: str = "INFO",
        format: str = "text",
        extra_fields: Optional[Dict[str, Any]] = None,
        **options: Any
    ) -> "LoggingConfig":
        """
        Собрать конфиг из строковых level / format.

        Остальные поля передаются как есть (``enable_file=True, file_path=...``).

        Raises:
            ValueError: Неизвестный уровень или формат
        """
        return cls(
            level=LogLevel(level.upper()),
            format=LogFormat(format.lower()),
            extra_fields=dict(extra_fields or {}),
            **options
        )

    @classmethod
    def debug_console(cls) -> "LoggingConfig":
        """DEBUG в консоль цветом: вывод ``Client.set_debug()``."""
        return cls(level=LogLevel.DEBUG, format=LogFormat.COLORED)

    @classmethod
    def debug_file(cls, filename: str, max_bytes: int = DEBUG_FILE_MAX_BYTES) -> "LoggingConfig":
        """DEBUG в ``<filename>.txt`` с ротацией: вывод ``Client.set_debug_file()``."""
        return cls(
            level=LogLevel.DEBUG,
            format=LogFormat.TEXT,
            enable_console=False,
            enable_file=True,
            file_path=f"{filename}.txt",
            max_bytes=max_bytes,
        )
