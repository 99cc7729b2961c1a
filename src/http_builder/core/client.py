# src/http_builder/core/client.py
"""
Client: общая конфигурация, из которой строятся запросы.

Client разделяется между потоками. Все мутации общих map'ов (заголовки,
query, form data, cookies) и снимки для новых запросов идут под одним
RLock.
"""

import base64
import threading
import time
from http.cookiejar import CookieJar
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from .buffer_pool import BufferPool
from .config import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT,
    RetryConfig,
    TimeoutConfig,
    TransportConfig,
)
from .debug import DebugSink, LoggerDebugSink, NullDebugSink
from .encoding import parse_query_string, stringify
from .executor import ExecutionEngine
from .logging import NullLogger
from .negotiation import FORM_CONTENT_TYPE, ContentNegotiator
from .request import PreparedRequest, Request
from .response import Response
from .transport import RequestsTransport, Transport
from ..utils.marshal import json_marshal, json_unmarshal, xml_marshal, xml_unmarshal
from ..utils.user_agents import random_user_agent

DEFAULT_AUTH_SCHEME = "Bearer"
DEFAULT_AUTHORIZATION_HEADER = "Authorization"

_PROXY_SCHEMES = ("http", "https", "socks4", "socks5", "socks5h")


class Client:
    """
    Общая конфигурация HTTP запросов.

    Features:
        - Chainable сеттеры (каждый возвращает client)
        - Thread-safe: мутации и снимки под одним lock'ом
        - Retry только для transport ошибок
        - Подменяемые JSON/XML marshal функции
        - Injected transport, cookie store, logger и debug sink

    Example:
        >>> client = Client("https://api.example.com").set_header("X-App", "demo")
        >>> response = client.r().set_query_param("page", 1).get("users")
        >>> response.json()

        >>> with Client("https://api.example.com", retry_count=5) as client:
        ...     client.r().set_body({"name": "John"}).post("users")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Union[int, float, Tuple[float, float], TimeoutConfig] = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        headers: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        user_agent: Optional[str] = None,
        transport: Optional[Transport] = None,
        transport_config: Optional[TransportConfig] = None,
        cookie_store: Optional[CookieJar] = None,
        logger=None,
        debug_sink: Optional[DebugSink] = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        buffer_pool_size: int = 64,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            base_url: Base URL (завершающий ``/`` отрезается)
            timeout: Таймаут попытки: число, (connect, read) или TimeoutConfig
            retry_count: Общее количество попыток
            headers: Заголовки по умолчанию
            query_params: Query параметры по умолчанию
            user_agent: User-Agent (по умолчанию случайный браузерный)
            transport: Transport (по умолчанию RequestsTransport)
            transport_config: Настройки для transport'а по умолчанию
            cookie_store: Cookie jar (по умолчанию jar transport'а)
            logger: HTTPBuilderLogger (no-op по умолчанию)
            debug_sink: DebugSink (no-op по умолчанию)
            max_concurrent: Максимум одновременных обменов
            buffer_pool_size: Размер пула буферов для body
            sleep: Функция ожидания между попытками
        """
        self._lock = threading.RLock()
        self._logger = logger or NullLogger()

        self._base_url = ""
        self._headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self._query_params: Dict[str, str] = {}
        self._form_data: Dict[str, str] = {}
        self._cookie_header: List[str] = []
        self._cookies: List[Tuple[str, str]] = []

        self._timeout = TimeoutConfig.from_value(timeout)
        self._retry = RetryConfig(retry_count=retry_count)

        self._json_marshal: Callable[[Any], bytes] = json_marshal
        self._json_unmarshal: Callable[[bytes], Any] = json_unmarshal
        self._xml_marshal: Callable[[Any], bytes] = xml_marshal
        self._xml_unmarshal: Callable[[bytes], Dict[str, Any]] = xml_unmarshal
        self._result_transform: Optional[Callable[[str], str]] = None

        self._auth_scheme = DEFAULT_AUTH_SCHEME
        self._authorization_header = DEFAULT_AUTHORIZATION_HEADER

        self._transport = transport or RequestsTransport(transport_config, cookie_store)
        if transport is not None and transport_config is not None:
            self._transport.configure(transport_config)
        if transport is not None and cookie_store is not None:
            self._transport.set_cookie_store(cookie_store)

        self._engine = ExecutionEngine(
            self._transport,
            retry=self._retry,
            timeout=self._timeout,
            logger=self._logger,
            debug_sink=debug_sink,
            buffer_pool=BufferPool(buffer_pool_size),
            max_concurrent=max_concurrent,
            sleep=sleep,
        )
        self._owns_debug_sink = False
        self._closed = False

        self._headers["User-Agent"] = user_agent or random_user_agent()
        if base_url:
            self.set_base_url(base_url)
        if headers:
            self.set_headers(headers)
        if query_params:
            self.set_query_params(query_params)

    # ==================== Read accessors ====================

    @property
    def base_url(self) -> str:
        with self._lock:
            return self._base_url

    @property
    def retry_count(self) -> int:
        with self._lock:
            return self._retry.retry_count

    @property
    def retry(self) -> RetryConfig:
        with self._lock:
            return self._retry

    @property
    def timeout(self) -> TimeoutConfig:
        with self._lock:
            return self._timeout

    @property
    def debug(self) -> bool:
        return bool(self._engine.debug_sink)

    @property
    def logger(self):
        return self._logger

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def engine(self) -> ExecutionEngine:
        return self._engine

    @property
    def cookie_store(self) -> CookieJar:
        return self._transport.cookie_store

    @property
    def auth_scheme(self) -> str:
        with self._lock:
            return self._auth_scheme

    @property
    def authorization_header(self) -> str:
        with self._lock:
            return self._authorization_header

    @property
    def result_transform(self) -> Optional[Callable[[str], str]]:
        with self._lock:
            return self._result_transform

    def get_headers(self) -> Dict[str, str]:
        """Копия заголовков по умолчанию (включая Cookie фрагменты)."""
        with self._lock:
            headers = dict(self._headers)
            if self._cookie_header:
                headers["Cookie"] = "; ".join(self._cookie_header)
            return headers

    def get_query_params(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._query_params)

    def get_form_data(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._form_data)

    def get_cookie(self) -> str:
        """Сырые Cookie фрагменты, склеенные через ``; ``."""
        with self._lock:
            return "; ".join(self._cookie_header)

    def get_cookies(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._cookies)

    # ==================== Mutators: target / headers ====================

    def set_base_url(self, base_url: str) -> 'Client':
        with self._lock:
            self._base_url = (base_url or "").rstrip("/")
        return self

    def set_header(self, key: str, value: Any) -> 'Client':
        with self._lock:
            self._headers[key] = stringify(value)
        return self

    def set_headers(self, headers: Mapping[str, Any]) -> 'Client':
        with self._lock:
            for key, value in headers.items():
                self._headers[key] = stringify(value)
        return self

    def set_user_agent(self, user_agent: str) -> 'Client':
        return self.set_header("User-Agent", user_agent)

    def set_content_type(self, content_type: str) -> 'Client':
        return self.set_header("Content-Type", content_type)

    # ==================== Mutators: query / form ====================

    def set_query_param(self, key: str, value: Any) -> 'Client':
        with self._lock:
            self._query_params[key] = stringify(value)
        return self

    def set_query_params(self, params: Mapping[str, Any]) -> 'Client':
        with self._lock:
            for key, value in params.items():
                self._query_params[key] = stringify(value)
        return self

    def set_query_string(self, query: str) -> 'Client':
        """
        Разобрать ``a=1&b=2`` в query параметры.

        Невалидная строка логируется, состояние не меняется.
        """
        try:
            params = parse_query_string(query)
        except ValueError as e:
            self._logger.warning(
                "Invalid query string ignored",
                operation="set_query_string",
                error=str(e),
            )
            return self
        return self.set_query_params(params)

    def set_form_data(self, key: str, value: Any) -> 'Client':
        with self._lock:
            self._form_data[key] = stringify(value)
        return self

    def set_form_data_many(self, data: Mapping[str, Any]) -> 'Client':
        with self._lock:
            for key, value in data.items():
                self._form_data[key] = stringify(value)
        return self

    # ==================== Mutators: cookies ====================

    def set_cookie(self, cookie: str) -> 'Client':
        """Добавить сырой фрагмент Cookie заголовка, например ``"sid=abc"``."""
        with self._lock:
            self._cookie_header.append(cookie.strip().rstrip(";"))
        return self

    def add_cookie(self, name: str, value: Any) -> 'Client':
        """Cookie, которая копируется в каждый запрос и привязывается к его URL."""
        with self._lock:
            self._cookies.append((name, stringify(value)))
        return self

    def set_cookie_store(self, jar: CookieJar) -> 'Client':
        self._transport.set_cookie_store(jar)
        return self

    # ==================== Mutators: auth ====================

    def set_auth_token(self, token: str) -> 'Client':
        with self._lock:
            scheme = self._auth_scheme
            header = self._authorization_header
        value = f"{scheme} {token}" if scheme else token
        return self.set_header(header, value)

    def set_auth_scheme(self, scheme: str) -> 'Client':
        with self._lock:
            self._auth_scheme = scheme
        return self

    def set_authorization_key(self, header: str) -> 'Client':
        """Имя заголовка авторизации (по умолчанию ``Authorization``)."""
        with self._lock:
            self._authorization_header = header
        return self

    def set_basic_auth(self, username: str, password: str) -> 'Client':
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.set_header(self.authorization_header, f"Basic {credentials}")

    # ==================== Mutators: execution ====================

    def set_retry_count(self, count: int) -> 'Client':
        """Количество попыток; ``<= 0`` логируется и игнорируется."""
        if count <= 0:
            self._logger.warning(
                "Retry count must be positive, keeping previous value",
                operation="set_retry_count",
                retry_count=count,
                current=self.retry_count,
            )
            return self
        with self._lock:
            self._retry = self._retry.with_retry_count(count)
        return self

    def set_retry_wait_time(self, seconds: float) -> 'Client':
        try:
            with self._lock:
                self._retry = self._retry.with_wait_time(seconds)
        except ValueError as e:
            self._logger.warning("Invalid retry wait time ignored", operation="set_retry_wait_time", error=str(e))
        return self

    def set_retry_config(self, config: RetryConfig) -> 'Client':
        with self._lock:
            self._retry = config
        return self

    def set_timeout(self, timeout: Union[int, float, Tuple[float, float], TimeoutConfig]) -> 'Client':
        """Таймаут одной попытки; невалидное значение логируется и игнорируется."""
        try:
            config = TimeoutConfig.from_value(timeout)
        except (ValueError, TypeError, IndexError) as e:
            self._logger.warning("Invalid timeout ignored", operation="set_timeout", error=str(e))
            return self
        with self._lock:
            self._timeout = config
        return self

    def set_result_func(self, func: Optional[Callable[[str], str]]) -> 'Client':
        """Result transform для каждого ответа (ошибки не ломают вызов)."""
        with self._lock:
            self._result_transform = func
        return self

    # ==================== Mutators: transport ====================

    def set_proxy(self, proxy: Optional[str]) -> 'Client':
        """
        Прокси для transport'а; None - убрать.

        Невалидный URL логируется и не применяется.
        """
        if proxy:
            parts = urlsplit(proxy)
            if parts.scheme.lower() not in _PROXY_SCHEMES or not parts.netloc:
                self._logger.warning(
                    "Invalid proxy url ignored",
                    operation="set_proxy",
                    proxy=proxy,
                )
                return self
        self._transport.configure(self._transport.config.with_proxy(proxy or None))
        return self

    def set_transport_config(self, config: TransportConfig) -> 'Client':
        self._transport.configure(config)
        return self

    # ==================== Mutators: codecs ====================

    def set_json_marshal(self, func: Callable[[Any], bytes]) -> 'Client':
        with self._lock:
            self._json_marshal = func
        return self

    def set_json_unmarshal(self, func: Callable[[bytes], Any]) -> 'Client':
        with self._lock:
            self._json_unmarshal = func
        return self

    def set_xml_marshal(self, func: Callable[[Any], bytes]) -> 'Client':
        with self._lock:
            self._xml_marshal = func
        return self

    def set_xml_unmarshal(self, func: Callable[[bytes], Dict[str, Any]]) -> 'Client':
        with self._lock:
            self._xml_unmarshal = func
        return self

    def negotiator(self) -> ContentNegotiator:
        """ContentNegotiator с текущими marshal функциями."""
        with self._lock:
            return ContentNegotiator(
                self._json_marshal,
                self._json_unmarshal,
                self._xml_marshal,
                logger=self._logger,
            )

    # ==================== Debug ====================

    def set_debug(self, enabled: bool = True) -> 'Client':
        """Писать request/response записи в консоль (colored)."""
        if not enabled:
            return self.set_debug_sink(None)
        if not self._engine.debug_sink:
            self._replace_debug_sink(LoggerDebugSink(), owned=True)
        return self

    def set_debug_file(self, filename: str) -> 'Client':
        """Писать записи в ``<filename>.txt`` с ротацией по 1 MB."""
        self._replace_debug_sink(LoggerDebugSink.to_file(filename), owned=True)
        return self

    def set_debug_sink(self, sink: Optional[DebugSink]) -> 'Client':
        self._replace_debug_sink(sink or NullDebugSink(), owned=False)
        return self

    def _replace_debug_sink(self, sink: DebugSink, owned: bool) -> None:
        with self._lock:
            old, old_owned = self._engine.debug_sink, self._owns_debug_sink
            self._engine.debug_sink = sink
            self._owns_debug_sink = owned
        if old_owned and old is not sink:
            old.close()

    # ==================== Requests ====================

    def r(self) -> Request:
        """
        Новый Request со снимком заголовков, query, form data и cookies.

        Если есть form data и Content-Type не задан, запрос получает
        ``application/x-www-form-urlencoded``.
        """
        with self._lock:
            headers = self.get_headers()
            if self._form_data and "Content-Type" not in self._headers:
                headers["Content-Type"] = FORM_CONTENT_TYPE
            return Request(
                self,
                headers=headers,
                query_params=self._query_params,
                form_data=self._form_data,
                cookies=self._cookies,
            )

    request = r

    def dispatch(
        self,
        prepared: PreparedRequest,
        *,
        timeout: Optional[TimeoutConfig] = None,
        result_transform: Optional[Callable[[str], str]] = None
    ) -> Response:
        """Выполнить собранный запрос с настройками клиента."""
        with self._lock:
            retry = self._retry
            timeout = timeout or self._timeout
            transform = result_transform or self._result_transform
            json_decode = self._json_unmarshal
            xml_decode = self._xml_unmarshal
        return self._engine.execute(
            prepared,
            retry=retry,
            timeout=timeout,
            result_transform=transform,
            json_unmarshal=json_decode,
            xml_unmarshal=xml_decode,
        )

    # ==================== Lifecycle ====================

    def close(self) -> None:
        """Закрыть transport и debug sink. Безопасно вызывать повторно."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._transport.close()
        if self._owns_debug_sink:
            self._engine.debug_sink.close()
        self._logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<Client base_url={self.base_url!r}>"
