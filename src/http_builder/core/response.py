# src/http_builder/core/response.py
"""
Response wrapper.

Body читается из stream'а ровно один раз - при первом обращении к
байтам или тексту - и кэшируется. Все typed accessors работают по
закэшированным байтам; ошибки декодирования возникают только здесь,
никогда при dispatch.
"""

import codecs
import dataclasses
import re
import threading
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from lxml import etree
from lxml import html as lxml_html

from .exceptions import DecodeError, InvalidTargetError
from .logging import NullLogger
from .transport import TransportResponse
from ..utils.marshal import json_unmarshal as default_json_unmarshal
from ..utils.marshal import xml_unmarshal as default_xml_unmarshal

if TYPE_CHECKING:
    from .request import PreparedRequest

_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([^\s;\"']+)", re.IGNORECASE)


def charset_from_content_type(content_type: Optional[str], default: str = "utf-8") -> str:
    """
    Кодировка из Content-Type; неизвестные и отсутствующие -> default.

    Examples:
        >>> charset_from_content_type("text/html; charset=GBK")
        'gbk'
    """
    if content_type:
        match = _CHARSET_RE.search(content_type)
        if match:
            try:
                return codecs.lookup(match.group(1)).name
            except LookupError:
                pass
    return default


class Response:
    """
    Результат HTTP обмена.

    Args:
        raw: Ответ transport'а с непрочитанным body
        request: Подготовленный запрос, породивший ответ
        elapsed: Время обмена (сек)
        json_unmarshal: Функция декодирования JSON
        xml_unmarshal: Функция декодирования XML в dict
        logger: Логгер для ошибок чтения и result transform

    Example:
        >>> response = client.r().get("users")
        >>> response.status_code
        200
        >>> response.json()
        {'users': [...]}
    """

    def __init__(
        self,
        raw: TransportResponse,
        request: Optional['PreparedRequest'] = None,
        elapsed: float = 0.0,
        json_unmarshal: Optional[Callable[[bytes], Any]] = None,
        xml_unmarshal: Optional[Callable[[bytes], Dict[str, Any]]] = None,
        logger=None
    ):
        self._raw = raw
        self.request = request
        self.elapsed = elapsed
        self._json_unmarshal = json_unmarshal or default_json_unmarshal
        self._xml_unmarshal = xml_unmarshal or default_xml_unmarshal
        self._logger = logger or NullLogger()

        self._lock = threading.Lock()
        self._consumed = False
        self._content: Optional[bytes] = None
        self._read_error: Optional[Exception] = None
        self._result: Optional[str] = None

    # ==================== Body ====================

    @property
    def content(self) -> bytes:
        """
        Байты body.

        Первое обращение читает stream до конца и закрывает его.

        Raises:
            TransportError: Чтение body оборвалось. Любая ошибка чтения
                кэшируется: повторные обращения поднимают то же исключение
        """
        with self._lock:
            if not self._consumed:
                self._consumed = True
                try:
                    data = self._raw.stream.read()
                    self._content = bytes(data) if data else b""
                except Exception as e:
                    self._read_error = e
                    self._logger.error(
                        "Failed to read response body",
                        operation="read_body",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                finally:
                    self._raw.stream.close()
            if self._read_error is not None:
                raise self._read_error
            return self._content or b""

    def get_bytes(self) -> bytes:
        """То же, что :attr:`content`."""
        return self.content

    @property
    def encoding(self) -> str:
        """Кодировка из Content-Type (utf-8 по умолчанию)."""
        return charset_from_content_type(self.headers.get("Content-Type"))

    @property
    def raw_text(self) -> str:
        """Декодированный body без result transform."""
        return self.content.decode(self.encoding, errors="replace")

    @property
    def text(self) -> str:
        """
        Результат result transform, если он отработал, иначе декодированный body.
        """
        if self._result is not None:
            return self._result
        return self.raw_text

    def string(self) -> str:
        """То же, что :attr:`text`."""
        return self.text

    def text_as(self, encoding: str) -> str:
        """Декодировать закэшированные байты в указанной кодировке."""
        return self.content.decode(encoding, errors="replace")

    def string_gbk(self) -> str:
        """Body как GBK текст (китайские страницы без charset)."""
        return self.text_as("gbk")

    def apply_result_transform(self, transform: Callable[[str], str]) -> bool:
        """
        Применить result transform к сырому телу.

        Ошибка или пустой результат логируются, тело остаётся сырым.

        Returns:
            True если transform применён
        """
        raw = self.raw_text
        try:
            result = transform(raw)
        except Exception as e:
            self._logger.error(
                "Result transform failed, keeping raw body",
                operation="result_func",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        if not result:
            self._logger.warning(
                "Result transform returned empty result, keeping raw body",
                operation="result_func",
            )
            return False
        self._result = str(result)
        return True

    # ==================== Typed views ====================

    def json(self, target: Any = None) -> Any:
        """
        Декодировать body как JSON.

        Args:
            target: None - вернуть значение; dict/list - заполнить на месте;
                dataclass тип - построить экземпляр

        Raises:
            InvalidTargetError: target не является изменяемой ссылкой
            DecodeError: body не валидный JSON (или не подходит под target)

        Examples:
            >>> response.json()
            {'id': 1}
            >>> user = {}
            >>> response.json(user)
            >>> response.json(User)
            User(id=1)
        """
        is_dataclass_type = isinstance(target, type) and dataclasses.is_dataclass(target)
        if target is not None and not is_dataclass_type and not isinstance(target, (dict, list)):
            self._logger.error(
                "Invalid decode target",
                operation="json",
                target_type=type(target).__name__,
            )
            raise InvalidTargetError(target)

        try:
            value = self._json_unmarshal(self.content)
        except (ValueError, TypeError) as e:
            self._logger.error("JSON decode failed", operation="json", error=str(e))
            raise DecodeError("json", e) from e

        if target is None:
            return value

        if is_dataclass_type:
            return self._build_dataclass(target, value)

        if isinstance(target, dict):
            if not isinstance(value, dict):
                raise DecodeError("json", TypeError(f"expected object, got {type(value).__name__}"))
            target.clear()
            target.update(value)
            return target

        if not isinstance(value, list):
            raise DecodeError("json", TypeError(f"expected array, got {type(value).__name__}"))
        target[:] = value
        return target

    @staticmethod
    def _build_dataclass(cls: type, value: Any) -> Any:
        if not isinstance(value, dict):
            raise DecodeError("json", TypeError(f"expected object, got {type(value).__name__}"))
        names = {f.name for f in dataclasses.fields(cls) if f.init}
        try:
            return cls(**{k: v for k, v in value.items() if k in names})
        except TypeError as e:
            raise DecodeError("json", e) from e

    def json_path(self, path: str, default: Any = None) -> Any:
        """
        Достать значение из JSON по пути через точку.

        Числовые сегменты индексируют списки.

        Examples:
            >>> response.json_path("data.users.0.name")
            'John'
        """
        current = self.json()
        for segment in path.split("."):
            if isinstance(current, dict):
                if segment not in current:
                    return default
                current = current[segment]
            elif isinstance(current, list):
                try:
                    current = current[int(segment)]
                except (ValueError, IndexError):
                    return default
            else:
                return default
        return current

    def xml(self) -> ET.Element:
        """
        Body как XML дерево.

        Raises:
            DecodeError: body не well-formed XML
        """
        try:
            return ET.fromstring(self.content)
        except ET.ParseError as e:
            self._logger.error("XML decode failed", operation="xml", error=str(e))
            raise DecodeError("xml", e) from e

    def xml_dict(self) -> Dict[str, Any]:
        """
        Body как dict через настроенный xml_unmarshal.

        Raises:
            DecodeError: body не well-formed XML
        """
        try:
            return self._xml_unmarshal(self.content)
        except (ET.ParseError, ValueError, TypeError) as e:
            self._logger.error("XML decode failed", operation="xml_dict", error=str(e))
            raise DecodeError("xml", e) from e

    def html(self, encoding: Optional[str] = None) -> Any:
        """
        Body как lxml HTML документ.

        Args:
            encoding: Перекодировать body перед разбором (например "gbk")

        Raises:
            DecodeError: body пустой или не разбирается
        """
        source: Any = self.content if encoding is None else self.text_as(encoding)
        try:
            return lxml_html.document_fromstring(source)
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
            self._logger.error("HTML decode failed", operation="html", error=str(e))
            raise DecodeError("html", e) from e

    # ==================== Status / metadata ====================

    @property
    def status_code(self) -> int:
        return self._raw.status_code

    @property
    def reason(self) -> str:
        return self._raw.reason

    @property
    def status(self) -> str:
        """Строка статуса, например ``"200 OK"``."""
        if self._raw.reason:
            return f"{self._raw.status_code} {self._raw.reason}"
        return str(self._raw.status_code)

    @property
    def is_status_ok(self) -> bool:
        """Ровно 200 (не весь 2xx диапазон)."""
        return self._raw.status_code == 200

    @property
    def protocol(self) -> str:
        return self._raw.protocol

    @property
    def headers(self):
        return self._raw.headers

    @property
    def cookies(self) -> Dict[str, str]:
        """Cookies, выставленные ответом."""
        return dict(self._raw.cookies)

    def get_cookie_string(self) -> str:
        """Cookies ответа в формате заголовка ``Cookie``."""
        return "; ".join(f"{name}={value}" for name, value in self._raw.cookies.items())

    @property
    def url(self) -> str:
        """Итоговый URL (после редиректов)."""
        return self._raw.url

    @property
    def is_consumed(self) -> bool:
        """Body уже прочитан (или stream закрыт)."""
        with self._lock:
            return self._consumed

    # ==================== Lifecycle ====================

    def close(self) -> None:
        """Закрыть stream без чтения, если body ещё не читали."""
        with self._lock:
            if not self._consumed:
                self._consumed = True
                self._content = b""
                self._raw.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
