"""
Content negotiation: how a body value becomes bytes plus a Content-Type.

Callers can state intent explicitly with one of the :class:`Body` variants
(``JsonBody(value)``, ``RawBody(data)``, ...) or pass a plain value, which
is classified once by :meth:`Body.infer`. Negotiation then picks exactly
one serialization path:

1. form content type + JSON text body -> flattened form fields
2. bytes / text -> verbatim (content type sniffed when absent)
3. mapping -> JSON (or form fields / XML when declared)
4. record (dataclass, NamedTuple, plain object) -> JSON (or form / XML)
5. anything else -> :class:`UnsupportedBodyType`
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .encoding import encode_params
from .exceptions import BodyEncodingError, UnsupportedBodyType
from ..utils.marshal import is_record

PLAIN_TEXT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
OCTET_STREAM_TYPE = "application/octet-stream"

_JSON_CHECK = re.compile(r"(application|text)/(.*json.*)(;|$)", re.IGNORECASE)
_XML_CHECK = re.compile(r"(application|text)/(.*xml.*)(;|$)", re.IGNORECASE)


def is_json_type(content_type: Optional[str]) -> bool:
    """True if the content type looks like JSON (``application/problem+json`` etc)."""
    return bool(content_type) and _JSON_CHECK.search(content_type) is not None


def is_xml_type(content_type: Optional[str]) -> bool:
    """True if the content type looks like XML."""
    return bool(content_type) and _XML_CHECK.search(content_type) is not None


def is_form_type(content_type: Optional[str]) -> bool:
    """True for ``application/x-www-form-urlencoded`` (parameters ignored)."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == FORM_CONTENT_TYPE


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SNIFFING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_SNIFF_LEN = 512

# (prefix, content type)
_EXACT_SIGNATURES = (
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", PLAIN_TEXT_TYPE),
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"OggS\x00", "application/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
)

_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)

# Байты, которые не встречаются в тексте (WHATWG "binary data byte")
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _sniff_bytes(data: bytes) -> str:
    head = data[:_SNIFF_LEN]
    if not head:
        return PLAIN_TEXT_TYPE

    for prefix, content_type in _EXACT_SIGNATURES:
        if head.startswith(prefix):
            return content_type

    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "audio/wave"
    if head[:4] == b"RIFF" and head[8:14] == b"WEBPVP":
        return "image/webp"

    stripped = head.lstrip(b"\t\n\x0c\r ")
    upper = stripped[:16].upper()
    for tag in _HTML_TAGS:
        if upper.startswith(tag):
            rest = stripped[len(tag):len(tag) + 1]
            if tag == b"<!--" or rest in (b" ", b">"):
                return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    if any(byte in _BINARY_BYTES for byte in head):
        return OCTET_STREAM_TYPE
    return PLAIN_TEXT_TYPE


def detect_content_type(value: Any) -> str:
    """
    Infer a content type from a body value.

    Bytes are sniffed by signature (text vs binary heuristic on the first
    512 bytes); strings are plain text; mappings, records and sequences
    are JSON.

    Examples:
        >>> detect_content_type(b"\\x89PNG\\r\\n\\x1a\\n....")
        'image/png'
        >>> detect_content_type("hello")
        'text/plain; charset=utf-8'
        >>> detect_content_type({"a": 1})
        'application/json'
    """
    if isinstance(value, Body):
        value = value.value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _sniff_bytes(bytes(value))
    if isinstance(value, str):
        return PLAIN_TEXT_TYPE
    if isinstance(value, (Mapping, list, tuple)) or is_record(value):
        return JSON_CONTENT_TYPE
    return PLAIN_TEXT_TYPE


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BODY VARIANTS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Body:
    """
    Tagged body value.

    Subclasses state how the caller wants the value serialized. Use
    :meth:`infer` to classify an untagged value.
    """

    kind = "body"

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.value == other.value  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]

    @staticmethod
    def infer(value: Any) -> 'Body':
        """
        Classify a plain value into a body variant.

        Raises:
            UnsupportedBodyType: If no variant fits the value
        """
        if isinstance(value, Body):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return RawBody(bytes(value))
        if isinstance(value, str):
            return TextBody(value)
        if isinstance(value, Mapping):
            return JsonBody(value)
        if isinstance(value, tuple) and hasattr(value, "_asdict"):
            return JsonBody(value)
        if isinstance(value, (list, tuple)):
            return JsonBody(value)
        if hasattr(value, "read") and callable(value.read):
            return StreamBody(value)
        if value is not None and not isinstance(value, (int, float, complex, set, frozenset)) \
                and is_record(value):
            return JsonBody(value)
        raise UnsupportedBodyType(type(value).__name__)


class RawBody(Body):
    """Bytes sent verbatim."""
    kind = "raw"


class TextBody(Body):
    """Text sent verbatim (utf-8)."""
    kind = "text"


class JsonBody(Body):
    """Mapping, record or sequence serialized as JSON (or form/XML if declared)."""
    kind = "json"

    @property
    def shape(self) -> str:
        """``mapping``, ``record`` or ``sequence``."""
        if isinstance(self.value, Mapping):
            return "mapping"
        if isinstance(self.value, (list, tuple)) and not hasattr(self.value, "_asdict"):
            return "sequence"
        return "record"


class FormBody(Body):
    """Mapping or record always sent as ``application/x-www-form-urlencoded``."""
    kind = "form"


class XmlBody(Body):
    """Mapping or record always sent as XML."""
    kind = "xml"


class StreamBody(Body):
    """File-like object; read fully at negotiation time."""
    kind = "stream"


@dataclass(frozen=True)
class EncodedBody:
    """
    Result of content negotiation.

    Attributes:
        content: Bytes to send
        content_type: Content type that produced them
        form_fields: Flattened fields when the body was form-encoded
    """
    content: bytes
    content_type: str
    form_fields: Optional[Dict[str, str]] = None

    @property
    def is_form(self) -> bool:
        return self.form_fields is not None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# NEGOTIATOR
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class ContentNegotiator:
    """
    Decides how a request body is serialized.

    Args:
        json_marshal: ``value -> bytes``
        json_unmarshal: ``bytes -> value``
        xml_marshal: ``value -> bytes``
        logger: Logger for encoding failures (no-op if None)

    Example:
        >>> negotiator = ContentNegotiator(json_marshal, json_unmarshal, xml_marshal)
        >>> encoded = negotiator.negotiate({"name": "John"}, None)
        >>> encoded.content_type
        'application/json'
    """

    def __init__(
        self,
        json_marshal: Callable[[Any], bytes],
        json_unmarshal: Callable[[bytes], Any],
        xml_marshal: Callable[[Any], bytes],
        logger=None
    ):
        from .logging import NullLogger

        self.json_marshal = json_marshal
        self.json_unmarshal = json_unmarshal
        self.xml_marshal = xml_marshal
        self._logger = logger or NullLogger()

    def negotiate(self, body: Any, content_type: Optional[str] = None) -> EncodedBody:
        """
        Produce bytes and a content type for the given body.

        Args:
            body: Body value (plain or a :class:`Body` variant)
            content_type: Explicit Content-Type header, if any

        Returns:
            EncodedBody

        Raises:
            UnsupportedBodyType: Body shape has no serialization rule
            BodyEncodingError: A marshal function failed
        """
        try:
            tagged = Body.infer(body)
        except UnsupportedBodyType as e:
            e.content_type = content_type
            self._logger.error(
                "Unsupported body type",
                operation="negotiate",
                body_type=e.type_name,
                content_type=content_type,
            )
            raise

        if isinstance(tagged, StreamBody):
            tagged = RawBody(self._read_stream(tagged.value))

        if isinstance(tagged, FormBody):
            return self._encode_form(tagged.value, content_type or FORM_CONTENT_TYPE)

        if isinstance(tagged, XmlBody):
            content = self._marshal(self.xml_marshal, tagged.value, "xml")
            return EncodedBody(content, content_type or XML_CONTENT_TYPE)

        form = is_form_type(content_type)

        if isinstance(tagged, TextBody):
            if form:
                fields = self._json_object_or_none(tagged.value)
                if fields is not None:
                    return self._fields_to_form(fields, content_type)
            return EncodedBody(tagged.value.encode("utf-8"), content_type or PLAIN_TEXT_TYPE)

        if isinstance(tagged, RawBody):
            return EncodedBody(tagged.value, content_type or detect_content_type(tagged.value))

        if isinstance(tagged, JsonBody):
            shape = tagged.shape
            if form:
                if shape == "sequence":
                    raise UnsupportedBodyType(type(tagged.value).__name__, content_type)
                return self._encode_form(tagged.value, content_type)
            if is_xml_type(content_type):
                if shape == "sequence":
                    raise UnsupportedBodyType(type(tagged.value).__name__, content_type)
                return EncodedBody(self._marshal(self.xml_marshal, tagged.value, "xml"), content_type)
            content = self._marshal(self.json_marshal, tagged.value, "json")
            return EncodedBody(content, content_type or JSON_CONTENT_TYPE)

        raise UnsupportedBodyType(type(tagged).__name__, content_type)

    # ==================== Внутренние методы ====================

    def _marshal(self, fn: Callable[[Any], Any], value: Any, fmt: str) -> bytes:
        try:
            data = fn(value)
        except Exception as e:
            self._logger.error(
                "Body marshal failed",
                operation=f"{fmt}_marshal",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BodyEncodingError(f"failed to encode body as {fmt}", e) from e
        if isinstance(data, str):
            data = data.encode("utf-8")
        return bytes(data)

    def _read_stream(self, stream: Any) -> bytes:
        try:
            data = stream.read()
        except Exception as e:
            self._logger.error("Body stream read failed", operation="read_stream", error=str(e))
            raise BodyEncodingError("failed to read body stream", e) from e
        if isinstance(data, str):
            data = data.encode("utf-8")
        return bytes(data)

    def _json_object_or_none(self, text: str) -> Optional[Dict[str, Any]]:
        """Parse text as a JSON object; None if it is not one."""
        try:
            value = self.json_unmarshal(text.encode("utf-8"))
        except Exception:
            return None
        return value if isinstance(value, dict) else None

    def _encode_form(self, value: Any, content_type: str) -> EncodedBody:
        if isinstance(value, Mapping) and all(isinstance(v, str) for v in value.values()):
            fields = {str(k): v for k, v in value.items()}
            return self._fields_to_form(fields, content_type)

        # Round trip через JSON: ключи сохраняются, значения - текстом
        data = self._marshal(self.json_marshal, value, "json")
        try:
            fields = self.json_unmarshal(data)
        except Exception as e:
            self._logger.error("Form flattening failed", operation="json_unmarshal", error=str(e))
            raise BodyEncodingError("failed to flatten body into form fields", e) from e
        if not isinstance(fields, dict):
            raise UnsupportedBodyType(type(value).__name__, content_type)
        return self._fields_to_form(fields, content_type)

    def _fields_to_form(self, fields: Mapping[str, Any], content_type: str) -> EncodedBody:
        flat = {str(k): _form_value(v) for k, v in fields.items()}
        return EncodedBody(encode_params(flat).encode("utf-8"), content_type, form_fields=flat)
