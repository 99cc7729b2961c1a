"""
Иерархия исключений HTTP Builder.

Классификация:
- TransportError (retryable=True) - сбой ниже HTTP уровня, можно ретраить
- Ошибки сборки запроса (fatal=True) - НЕ ретраить никогда
- Ошибки декодирования - только при явном запросе typed view
"""

from typing import Optional

import requests

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HTTPBuilderException(Exception):
    """Базовое исключение HTTP Builder."""

    retryable: bool = False
    fatal: bool = False

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ СБОРКИ ЗАПРОСА (fatal=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AssemblyError(HTTPBuilderException):
    """
    Ошибка сборки запроса - запрос не был отправлен.

    Возникает до любого сетевого I/O и никогда не ретраится.
    """
    fatal = True

class EmptyTargetError(AssemblyError):
    """И base URL, и path пустые."""

    def __init__(self, message: str = "base url and path are empty"):
        super().__init__(message)

class MalformedURLError(AssemblyError):
    """
    URL не удалось распарсить.

    Args:
        url: Строка, которую не удалось разобрать
        reason: Причина (опционально)
    """

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        msg = f"malformed url: {url!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)

class UnsupportedBodyType(AssemblyError):
    """
    Для типа body нет правила сериализации.

    Args:
        type_name: Имя runtime типа body
        content_type: Content-Type запроса (если был)
    """

    def __init__(self, type_name: str, content_type: Optional[str] = None):
        self.type_name = type_name
        self.content_type = content_type
        msg = f"unsupported body type: {type_name}"
        if content_type:
            msg += f" (content-type: {content_type})"
        super().__init__(msg)

class BodyEncodingError(AssemblyError):
    """
    Marshal функция упала при сериализации body.

    Args:
        message: Сообщение
        cause: Исходное исключение
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        msg = message
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT ОШИБКИ (retryable=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(HTTPBuilderException):
    """
    Сбой ниже HTTP уровня - можно ретраить.

    Примеры: connection refused, таймаут, TLS handshake.
    """
    retryable = True

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = f"{message}"
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """
    Таймаут запроса.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        timeout: Значение таймаута
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.timeout = timeout
        msg = message
        if timeout:
            msg += f" (timeout: {timeout}s)"
        super().__init__(msg, url)

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - DNS resolution failed
    """
    pass

class ProxyError(TransportError):
    """Ошибка прокси."""
    pass

class SSLError(TransportError):
    """TLS handshake / сертификат."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ИСПОЛНЕНИЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestExecutionError(HTTPBuilderException):
    """
    Исчерпаны все попытки из-за transport ошибок.

    Args:
        attempts: Количество выполненных попыток
        last_error: Последняя transport ошибка
        url: URL
    """

    def __init__(
        self,
        attempts: int,
        last_error: Optional[Exception] = None,
        url: Optional[str] = None
    ):
        self.attempts = attempts
        self.last_error = last_error
        self.url = url

        msg = f"request failed after {attempts} attempt(s)"
        if url:
            msg += f" for {url}"
        if last_error:
            msg += f". Last error: {str(last_error)}"

        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ДЕКОДИРОВАНИЕ (отложенные)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class InvalidTargetError(HTTPBuilderException):
    """Цель декодирования не является изменяемой ссылкой."""

    def __init__(self, target: object):
        self.target_type = type(target).__name__
        super().__init__(
            f"decode target must be a dict, list or dataclass type, "
            f"got {self.target_type}"
        )

class DecodeError(HTTPBuilderException):
    """
    Закэшированные байты невалидны для запрошенного формата.

    Args:
        format: Формат (json, xml, html)
        cause: Исходное исключение
    """

    def __init__(self, format: str, cause: Optional[Exception] = None):
        self.format = format
        self.cause = cause
        msg = f"failed to decode response body as {format}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)

class ConfigurationError(HTTPBuilderException, ValueError):
    """
    Невалидное значение конфигурации.

    Поднимается валидаторами value-конфигов и ExecutionEngine. Наследует
    ValueError, поэтому `except ValueError` в вызывающем коде его ловит.
    """
    fatal = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(
    exc: Exception,
    url: str,
    timeout: Optional[float] = None
) -> HTTPBuilderException:
    """
    Конвертировать requests.exceptions в наши transport исключения.

    Args:
        exc: Исключение из requests
        url: URL запроса
        timeout: Таймаут запроса (для сообщения)

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> exc = requests.exceptions.ConnectTimeout()
        >>> our_exc = classify_requests_exception(exc, "https://example.com")
        >>> assert isinstance(our_exc, TimeoutError)
        >>> assert our_exc.retryable == True
    """
    if isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError(f"Request timeout: {exc}", url, timeout)

    elif isinstance(exc, requests.exceptions.ProxyError):
        return ProxyError(f"Proxy error: {exc}", url)

    elif isinstance(exc, requests.exceptions.SSLError):
        return SSLError(f"SSL error: {exc}", url)

    elif isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionError(f"Connection error: {exc}", url)

    elif isinstance(exc, (requests.exceptions.ChunkedEncodingError,
                          requests.exceptions.ContentDecodingError)):
        return TransportError(f"Transport error: {exc}", url)

    elif isinstance(exc, requests.exceptions.InvalidURL):
        return MalformedURLError(url, str(exc))

    else:
        # Неизвестная ошибка - оборачиваем, без retry
        return HTTPBuilderException(str(exc))


def classify_httpx_exception(
    exc: Exception,
    url: str,
    timeout: Optional[float] = None
) -> HTTPBuilderException:
    """
    Конвертировать httpx исключения в наши transport исключения.

    httpx импортируется лениво - он нужен только для HttpxTransport.
    """
    import httpx

    if isinstance(exc, httpx.TimeoutException):
        return TimeoutError(f"Request timeout: {exc}", url, timeout)

    elif isinstance(exc, httpx.ProxyError):
        return ProxyError(f"Proxy error: {exc}", url)

    elif isinstance(exc, httpx.ConnectError):
        # httpx заворачивает TLS ошибки в ConnectError
        if "ssl" in str(exc).lower() or "certificate" in str(exc).lower():
            return SSLError(f"SSL error: {exc}", url)
        return ConnectionError(f"Connection error: {exc}", url)

    elif isinstance(exc, httpx.TransportError):
        return TransportError(f"Transport error: {exc}", url)

    elif isinstance(exc, httpx.InvalidURL):
        return MalformedURLError(url, str(exc))

    else:
        return HTTPBuilderException(str(exc))
