# src/http_builder/core/request.py
"""
Request builder.

Request создаётся через ``Client.r()`` и засевается снимком настроек
клиента (заголовки, query, form data, cookies). Сборка (URL, negotiation,
query, cookies) происходит при dispatch и не делает сетевого I/O; ошибки
сборки поднимаются синхронно и никогда не ретраятся.
"""

import base64
import re
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from .config import TimeoutConfig
from .debug import NO_BODY
from .encoding import append_query, encode_params, merge_params, parse_query_string, stringify
from .exceptions import AssemblyError, EmptyTargetError, MalformedURLError
from .negotiation import FORM_CONTENT_TYPE, EncodedBody, FormBody, JsonBody, XmlBody
from .transport import bind_cookies, cookie_pairs

if TYPE_CHECKING:
    from .client import Client
    from .response import Response
    from ..async_client import AsyncRequest

_FORBIDDEN_URL_CHARS = re.compile(r"[\x00-\x20\x7f]")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PREPARED REQUEST
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class PreparedRequest:
    """
    Полностью собранный запрос: всё, что нужно ExecutionEngine.

    Attributes:
        method: HTTP метод (upper case)
        url: Итоговый URL с query
        headers: Снимок заголовков (включая Content-Type)
        body: Произведённые байты body (None если body нет)
        cookies: Cookies, привязанные к URL
        query_string: Закодированные query параметры
        form_body: Закодированная форма, если body form-encoded
    """
    method: str
    url: str
    headers: CaseInsensitiveDict
    body: Optional[bytes] = None
    cookies: List[Tuple[str, str]] = field(default_factory=list)
    query_string: str = ""
    form_body: str = ""

    @property
    def host(self) -> str:
        return urlsplit(self.url).netloc

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def debug_record(self) -> Dict[str, Any]:
        """Запись для DebugSink.on_request."""
        if self.query_string:
            body: Any = self.query_string
        elif self.form_body:
            body = self.form_body
        elif self.body:
            body = self.body.decode("utf-8", errors="replace")
        else:
            body = NO_BODY
        return {
            "method": self.method,
            "host": self.host,
            "path": self.path,
            "url": self.url,
            "headers": dict(self.headers),
            "cookies": [f"{name}={value}" for name, value in self.cookies],
            "body": body,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUEST
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Request:
    """
    Builder одного вызова.

    Не предназначен для мутации из нескольких потоков, но мутаторы всё
    равно берут внутренний lock.

    Example:
        >>> response = (
        ...     client.r()
        ...     .set_query_param("page", 1)
        ...     .set_header("X-Trace", "abc")
        ...     .get("users")
        ... )
        >>> response = client.r().set_body({"name": "John", "age": 30}).post("users")
    """

    def __init__(
        self,
        client: 'Client',
        headers: Optional[Mapping[str, str]] = None,
        query_params: Optional[Mapping[str, str]] = None,
        form_data: Optional[Mapping[str, str]] = None,
        cookies: Optional[Iterable[Tuple[str, str]]] = None
    ):
        self._client = client
        self._lock = threading.RLock()

        self._headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        self._query_params: Dict[str, str] = dict(query_params or {})
        self._form_data: Dict[str, str] = dict(form_data or {})
        self._cookies: List[Tuple[str, str]] = list(cookies or [])

        self._body: Any = None
        self._result_func: Optional[Callable[[str], str]] = None
        self._timeout: Optional[TimeoutConfig] = None
        self.context: Dict[str, Any] = {}

        self._method = ""
        self._url = ""
        self._body_bytes: Optional[bytes] = None

    @property
    def client(self) -> 'Client':
        return self._client

    # ==================== Body ====================

    def set_body(self, body: Any) -> 'Request':
        """
        Установить body.

        Тип body (bytes, str, mapping, record, sequence, file-like или
        явный :class:`~http_builder.core.negotiation.Body`) определяет
        сериализацию при dispatch.
        """
        with self._lock:
            self._body = body
        return self

    def set_json(self, value: Any) -> 'Request':
        """Body, который сериализуется как JSON (или form/XML при явном Content-Type)."""
        return self.set_body(JsonBody(value))

    def set_form(self, value: Any) -> 'Request':
        """Body, который всегда уходит как form-urlencoded."""
        return self.set_body(FormBody(value))

    def set_xml(self, value: Any) -> 'Request':
        """Body, который всегда уходит как XML."""
        return self.set_body(XmlBody(value))

    # ==================== Headers ====================

    def set_header(self, key: str, value: Any) -> 'Request':
        with self._lock:
            self._headers[key] = stringify(value)
        return self

    def set_headers(self, headers: Mapping[str, Any]) -> 'Request':
        with self._lock:
            for key, value in headers.items():
                self._headers[key] = stringify(value)
        return self

    def set_content_type(self, content_type: str) -> 'Request':
        return self.set_header("Content-Type", content_type)

    def set_auth_token(self, token: str) -> 'Request':
        """``<auth scheme> <token>`` в заголовок авторизации клиента."""
        scheme = self._client.auth_scheme
        value = f"{scheme} {token}" if scheme else token
        return self.set_header(self._client.authorization_header, value)

    def set_basic_auth(self, username: str, password: str) -> 'Request':
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.set_header(self._client.authorization_header, f"Basic {credentials}")

    # ==================== Cookies ====================

    def set_cookie(self, name: str, value: Any) -> 'Request':
        with self._lock:
            self._cookies.append((name, stringify(value)))
        return self

    def set_cookies(self, cookies: Union[Mapping[str, Any], Iterable[Any]]) -> 'Request':
        """Добавить cookies: mapping, пары (name, value) или http.cookiejar.Cookie."""
        if isinstance(cookies, Mapping):
            pairs = [(str(k), stringify(v)) for k, v in cookies.items()]
        else:
            pairs = cookie_pairs(cookies)
        with self._lock:
            self._cookies.extend(pairs)
        return self

    # ==================== Query / form ====================

    def set_query_param(self, key: str, value: Any) -> 'Request':
        with self._lock:
            self._query_params[key] = stringify(value)
        return self

    def set_query_params(self, params: Mapping[str, Any]) -> 'Request':
        with self._lock:
            self._query_params = merge_params(self._query_params, params)
        return self

    def set_query_string(self, query: str) -> 'Request':
        """Разобрать ``a=1&b=2``; невалидная строка логируется, состояние не меняется."""
        try:
            params = parse_query_string(query)
        except ValueError as e:
            self._client.logger.warning(
                "Invalid query string ignored",
                operation="set_query_string",
                error=str(e),
            )
            return self
        return self.set_query_params(params)

    def set_form_data(self, key: str, value: Any) -> 'Request':
        with self._lock:
            self._form_data[key] = stringify(value)
        return self

    def set_form_data_many(self, data: Mapping[str, Any]) -> 'Request':
        with self._lock:
            self._form_data = merge_params(self._form_data, data)
        return self

    # ==================== Per-request overrides ====================

    def set_result_func(self, func: Optional[Callable[[str], str]]) -> 'Request':
        """Result transform только для этого запроса (перекрывает клиентский)."""
        with self._lock:
            self._result_func = func
        return self

    def set_timeout(self, timeout: Union[int, float, Tuple[float, float], TimeoutConfig]) -> 'Request':
        """Таймаут только для этого запроса."""
        with self._lock:
            self._timeout = TimeoutConfig.from_value(timeout)
        return self

    def set_context(self, key: str, value: Any) -> 'Request':
        """Произвольные метаданные вызова (не отправляются)."""
        with self._lock:
            self.context[key] = value
        return self

    # ==================== Accessors ====================

    def get_query_params_encode(self) -> str:
        with self._lock:
            return encode_params(self._query_params)

    def get_form_data_encode(self) -> str:
        with self._lock:
            return encode_params(self._form_data)

    def get_request_headers(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._headers)

    def get_content_type(self) -> Optional[str]:
        with self._lock:
            return self._headers.get("Content-Type")

    def get_cookies(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._cookies)

    @property
    def method(self) -> str:
        """Метод последнего dispatch."""
        return self._method

    @property
    def url(self) -> str:
        """URL последнего dispatch (с query)."""
        return self._url

    @property
    def host(self) -> str:
        return urlsplit(self._url).netloc if self._url else ""

    @property
    def path(self) -> str:
        return urlsplit(self._url).path if self._url else ""

    @property
    def body_bytes(self) -> Optional[bytes]:
        """Байты body, произведённые при последнем dispatch."""
        return self._body_bytes

    # ==================== Assembly ====================

    def resolve_url(self, path: str = "") -> str:
        """
        Склеить base URL клиента и path.

        Непустой base всегда склеивается с path через ``/``, даже если path
        сам похож на URL. Без base path используется как есть.

        Raises:
            EmptyTargetError: base URL и path оба пустые
            MalformedURLError: результат не разбирается как http(s) URL

        Examples:
            >>> Client("https://api.example.com").r().resolve_url("users")
            'https://api.example.com/users'
        """
        base = self._client.base_url
        path = path or ""

        if not base and not path:
            raise EmptyTargetError()

        if not base:
            url = path
        else:
            if path and not path.startswith("/"):
                path = "/" + path
            url = base + path

        if _FORBIDDEN_URL_CHARS.search(url):
            raise MalformedURLError(url, "contains whitespace or control characters")
        try:
            parts = urlsplit(url)
            parts.port  # невалидный порт поднимает ValueError
        except ValueError as e:
            raise MalformedURLError(url, str(e)) from e
        if parts.scheme.lower() not in ("http", "https"):
            raise MalformedURLError(url, "scheme must be http or https")
        if not parts.hostname:
            raise MalformedURLError(url, "missing host")
        return url

    def prepare(self, method: str, path: str = "") -> PreparedRequest:
        """
        Собрать запрос: URL, body, query, cookies. Без сетевого I/O.

        Query параметры всегда идут в URL, form data - всегда в body.
        Если задан и body, и form data: form-encoded body сливается с form
        data (поля body важнее), иначе form data отбрасывается с warning.

        Raises:
            AssemblyError: EmptyTargetError, MalformedURLError,
                UnsupportedBodyType, BodyEncodingError
        """
        method = method.upper()
        logger = self._client.logger
        try:
            with self._lock:
                url = self.resolve_url(path)
                headers = CaseInsensitiveDict(self._headers)
                form_data = dict(self._form_data)
                cookies = list(self._cookies)
                query_string = encode_params(self._query_params)
                body = self._body

            encoded = self._encode_body(body, form_data, headers.get("Content-Type"))
        except AssemblyError as e:
            logger.error(
                "Request assembly failed",
                operation="prepare",
                http_method=method,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        if encoded is not None and "Content-Type" not in headers:
            headers["Content-Type"] = encoded.content_type

        url = append_query(url, query_string)

        if cookies:
            bind_cookies(self._client.cookie_store, url, cookies)
            # Явный Cookie заголовок отключает подстановку из jar
            if headers.get("Cookie"):
                extra = "; ".join(f"{name}={value}" for name, value in cookies)
                headers["Cookie"] = f"{headers['Cookie']}; {extra}"

        prepared = PreparedRequest(
            method=method,
            url=url,
            headers=headers,
            body=encoded.content if encoded is not None else None,
            cookies=cookies,
            query_string=query_string,
            form_body=encoded.content.decode("utf-8") if encoded is not None and encoded.is_form else "",
        )

        with self._lock:
            self._method = method
            self._url = url
            self._body_bytes = prepared.body

        return prepared

    def _encode_body(
        self,
        body: Any,
        form_data: Dict[str, str],
        content_type: Optional[str]
    ) -> Optional[EncodedBody]:
        negotiator = self._client.negotiator()

        if body is None:
            if not form_data:
                return None
            return negotiator.negotiate(FormBody(form_data), content_type or FORM_CONTENT_TYPE)

        encoded = negotiator.negotiate(body, content_type)
        if not form_data:
            return encoded

        if encoded.is_form:
            merged = dict(form_data)
            merged.update(encoded.form_fields or {})
            return EncodedBody(encode_params(merged).encode("utf-8"), encoded.content_type, merged)

        self._client.logger.warning(
            "Form data ignored: body is not form-encoded",
            operation="prepare",
            content_type=encoded.content_type,
        )
        return encoded

    # ==================== Dispatch ====================

    def execute(self, method: str, path: str = "") -> 'Response':
        """
        Собрать и выполнить запрос.

        Raises:
            AssemblyError: Запрос не удалось собрать (не ретраится)
            RequestExecutionError: Исчерпаны попытки из-за transport ошибок
        """
        prepared = self.prepare(method, path)
        with self._lock:
            result_func = self._result_func
            timeout = self._timeout
        return self._client.dispatch(prepared, timeout=timeout, result_transform=result_func)

    def get(self, path: str = "") -> 'Response':
        return self.execute("GET", path)

    def post(self, path: str = "") -> 'Response':
        return self.execute("POST", path)

    def put(self, path: str = "") -> 'Response':
        return self.execute("PUT", path)

    def delete(self, path: str = "") -> 'Response':
        return self.execute("DELETE", path)

    def patch(self, path: str = "") -> 'Response':
        return self.execute("PATCH", path)

    def head(self, path: str = "") -> 'Response':
        return self.execute("HEAD", path)

    def options(self, path: str = "") -> 'Response':
        return self.execute("OPTIONS", path)

    def as_async(self) -> 'AsyncRequest':
        """Async фасад над этим запросом."""
        from ..async_client import AsyncRequest
        return AsyncRequest(self)

    def __repr__(self) -> str:
        return f"<Request {self._method or '?'} {self._url or self._client.base_url}>"
