# src/http_builder/core/transport.py
"""
Transport: всё, что ниже HTTP семантики.

Core только конфигурирует transport (таймауты, keep-alive, лимиты idle
соединений, прокси) и отдаёт ему собранный запрос. Пул соединений, TLS и
HTTP/2 реализует библиотека под transport'ом.

Любое исключение библиотеки на этом шве конвертируется в
:class:`~http_builder.core.exceptions.TransportError`.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from requests.cookies import RequestsCookieJar, create_cookie
from requests.structures import CaseInsensitiveDict

from .config import TransportConfig
from .exceptions import classify_requests_exception
from .session_manager import ThreadSafeSessionManager

logger = logging.getLogger(__name__)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RESPONSE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class TransportResponse:
    """
    Сырой ответ transport'а.

    Body не прочитан: ``stream`` отдаёт байты через ``read()`` и должен
    быть закрыт через ``close()``. За это отвечает Response wrapper.
    """
    status_code: int
    reason: str
    headers: Mapping[str, str]
    stream: Any
    url: str = ""
    protocol: str = "HTTP/1.1"
    cookies: Dict[str, str] = field(default_factory=dict)


class _RequestsBodyStream:
    """read()/close() поверх requests.Response со stream=True."""

    def __init__(self, response: requests.Response, url: str):
        self._response = response
        self._url = url

    def read(self) -> bytes:
        try:
            return self._response.content
        except requests.exceptions.RequestException as e:
            raise classify_requests_exception(e, self._url) from e

    def close(self) -> None:
        self._response.close()


_HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}


def _protocol_of(response: requests.Response) -> str:
    version = getattr(response.raw, "version", None)
    return _HTTP_VERSIONS.get(version, "HTTP/1.1")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# COOKIES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def default_cookie_path(path: str) -> str:
    """
    Путь по умолчанию для cookie без явного Path (RFC 6265 5.1.4).

    Examples:
        >>> default_cookie_path("/users/1")
        '/users'
        >>> default_cookie_path("/users")
        '/'
    """
    if not path or not path.startswith("/"):
        return "/"
    index = path.rfind("/")
    if index == 0:
        return "/"
    return path[:index]


def bind_cookies(
    jar: CookieJar,
    url: str,
    cookies: Iterable[Tuple[str, str]]
) -> int:
    """
    Привязать cookies к host/path разрешённого URL в cookie store.

    Returns:
        Сколько cookies записано
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    path = default_cookie_path(parts.path)
    count = 0
    for name, value in cookies:
        jar.set_cookie(create_cookie(name, value, domain=host, path=path))
        count += 1
    return count


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT ABC
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Transport(ABC):
    """
    Injected transport.

    Реализации обязаны:
    - выполнять ровно один HTTP обмен на ``send`` (без собственных retry);
    - поднимать только :class:`TransportError` при сбоях ниже HTTP;
    - возвращать ответ с непрочитанным body.
    """

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Tuple[float, float]
    ) -> TransportResponse:
        """Выполнить один обмен."""

    @abstractmethod
    def configure(self, config: TransportConfig) -> None:
        """Применить новые настройки (пул, прокси, keep-alive)."""

    @property
    @abstractmethod
    def cookie_store(self) -> CookieJar:
        """Cookie jar, общий для всех запросов transport'а."""

    @abstractmethod
    def set_cookie_store(self, jar: CookieJar) -> None:
        """Заменить cookie jar."""

    @property
    @abstractmethod
    def config(self) -> TransportConfig:
        """Текущие настройки."""

    def close(self) -> None:
        """Освободить соединения."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUESTS TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestsTransport(Transport):
    """
    Transport на requests.Session (по умолчанию).

    Каждый поток получает свою Session через ThreadSafeSessionManager;
    cookie jar общий. Адаптерные retry выключены - повторами управляет
    ExecutionEngine.

    Example:
        >>> transport = RequestsTransport(TransportConfig(proxy="http://127.0.0.1:8080"))
        >>> raw = transport.send("GET", "https://api.example.com", {}, None, (5, 30))
        >>> raw.stream.read()
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        cookie_store: Optional[CookieJar] = None
    ):
        self._config = config or TransportConfig()
        self._cookie_store = cookie_store if cookie_store is not None else RequestsCookieJar()
        self._lock = threading.Lock()
        self._session_manager = ThreadSafeSessionManager(self._create_session)

    def _create_session(self) -> requests.Session:
        """Собрать Session из текущего TransportConfig."""
        with self._lock:
            config = self._config
            jar = self._cookie_store

        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=config.max_idle_connections,
            pool_maxsize=config.max_idle_connections_per_host,
            max_retries=0,
        )
        session.mount('http://', adapter)
        session.mount('https://', adapter)

        session.trust_env = config.trust_env
        session.verify = config.verify_ssl
        session.cookies = jar  # type: ignore[assignment]
        if config.proxy:
            session.proxies = {'http': config.proxy, 'https': config.proxy}
        if config.keep_alive <= 0:
            session.headers['Connection'] = 'close'

        return session

    @property
    def config(self) -> TransportConfig:
        with self._lock:
            return self._config

    @property
    def cookie_store(self) -> CookieJar:
        with self._lock:
            return self._cookie_store

    def set_cookie_store(self, jar: CookieJar) -> None:
        with self._lock:
            self._cookie_store = jar
        self._session_manager.reset()

    def configure(self, config: TransportConfig) -> None:
        with self._lock:
            self._config = config
        self._session_manager.reset()
        logger.debug("Transport reconfigured: proxy=%s", bool(config.proxy))

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Tuple[float, float]
    ) -> TransportResponse:
        session = self._session_manager.get_session()
        config = self.config
        try:
            response = session.request(
                method=method,
                url=url,
                headers=dict(headers),
                data=body,
                timeout=timeout,
                allow_redirects=config.allow_redirects,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            raise classify_requests_exception(e, url, timeout[0] + timeout[1]) from e

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason or "",
            headers=CaseInsensitiveDict(response.headers),
            stream=_RequestsBodyStream(response, url),
            url=response.url or url,
            protocol=_protocol_of(response),
            cookies=response.cookies.get_dict(),
        )

    def close(self) -> None:
        self._session_manager.close_all()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HTTPX TRANSPORT (optional extra)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class _HttpxBodyStream:
    def __init__(self, response: Any, url: str):
        self._response = response
        self._url = url

    def read(self) -> bytes:
        import httpx

        try:
            return self._response.read()
        except httpx.HTTPError as e:
            from .exceptions import classify_httpx_exception
            raise classify_httpx_exception(e, self._url) from e

    def close(self) -> None:
        self._response.close()


class HttpxTransport(Transport):
    """
    Transport на httpx.Client (требует ``pip install http-builder[httpx]``).

    Умеет HTTP/2 при ``TransportConfig(http2=True)``.

    Example:
        >>> transport = HttpxTransport(TransportConfig(http2=True))
        >>> client = Client("https://api.example.com", transport=transport)
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        cookie_store: Optional[CookieJar] = None
    ):
        try:
            import httpx  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "httpx is required for HttpxTransport. "
                "Install with: pip install http-builder[httpx]"
            ) from e

        self._config = config or TransportConfig()
        self._cookie_store = cookie_store if cookie_store is not None else RequestsCookieJar()
        self._lock = threading.Lock()
        self._client = self._create_client()

    def _create_client(self) -> Any:
        import httpx

        config = self._config
        limits = httpx.Limits(
            max_connections=None,
            max_keepalive_connections=config.max_idle_connections,
            keepalive_expiry=config.idle_connection_timeout,
        )
        return httpx.Client(
            limits=limits,
            proxy=config.proxy,
            trust_env=config.trust_env,
            verify=config.verify_ssl,
            follow_redirects=config.allow_redirects,
            http2=config.http2,
            cookies=self._cookie_store,
        )

    @property
    def config(self) -> TransportConfig:
        with self._lock:
            return self._config

    @property
    def cookie_store(self) -> CookieJar:
        with self._lock:
            return self._cookie_store

    def set_cookie_store(self, jar: CookieJar) -> None:
        with self._lock:
            self._cookie_store = jar
            old, self._client = self._client, self._create_client()
        old.close()

    def configure(self, config: TransportConfig) -> None:
        with self._lock:
            self._config = config
            old, self._client = self._client, self._create_client()
        old.close()

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Tuple[float, float]
    ) -> TransportResponse:
        import httpx
        from .exceptions import classify_httpx_exception

        with self._lock:
            client = self._client

        connect, read = timeout
        try:
            request = client.build_request(
                method,
                url,
                headers=dict(headers),
                content=body,
                timeout=httpx.Timeout(read, connect=connect),
            )
            response = client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise classify_httpx_exception(e, url, connect + read) from e

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase or "",
            headers=CaseInsensitiveDict(response.headers.items()),
            stream=_HttpxBodyStream(response, url),
            url=str(response.url),
            protocol=response.http_version,
            cookies=dict(response.cookies.items()),
        )

    def close(self) -> None:
        with self._lock:
            self._client.close()


def cookie_pairs(cookies: Iterable[Any]) -> List[Tuple[str, str]]:
    """Нормализовать cookies в пары (name, value)."""
    pairs: List[Tuple[str, str]] = []
    for cookie in cookies:
        if isinstance(cookie, tuple):
            pairs.append((str(cookie[0]), str(cookie[1])))
        else:
            pairs.append((cookie.name, cookie.value or ""))
    return pairs


__all__ = [
    "TransportResponse",
    "Transport",
    "RequestsTransport",
    "HttpxTransport",
    "bind_cookies",
    "cookie_pairs",
    "default_cookie_path",
]
