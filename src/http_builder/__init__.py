"""HTTP Builder - fluent HTTP request builder with content negotiation and retries."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.client import Client
from .core.request import Request, PreparedRequest
from .core.response import Response
from .core.config import RetryConfig, TimeoutConfig, TransportConfig
from .core.negotiation import Body, RawBody, TextBody, JsonBody, FormBody, XmlBody, StreamBody
from .core.transport import Transport, TransportResponse, RequestsTransport, HttpxTransport
from .core.debug import DebugSink, LoggerDebugSink, NullDebugSink
from .core.logging import HTTPBuilderLogger, LoggingConfig
from .core.exceptions import (
    HTTPBuilderException,
    AssemblyError,
    EmptyTargetError,
    MalformedURLError,
    UnsupportedBodyType,
    BodyEncodingError,
    TransportError,
    TimeoutError,
    ConnectionError,
    RequestExecutionError,
    InvalidTargetError,
    DecodeError,
)
from .async_client import AsyncRequest

# NullHandler: пользователь сам настраивает logging.getLogger('http_builder')
logging.getLogger('http_builder').addHandler(logging.NullHandler())

try:
    __version__ = version("http-builder")
except PackageNotFoundError:
    # Пакет не установлен (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    "Client",
    "Request",
    "PreparedRequest",
    "Response",
    "AsyncRequest",
    "RetryConfig",
    "TimeoutConfig",
    "TransportConfig",
    "Body",
    "RawBody",
    "TextBody",
    "JsonBody",
    "FormBody",
    "XmlBody",
    "StreamBody",
    "Transport",
    "TransportResponse",
    "RequestsTransport",
    "HttpxTransport",
    "DebugSink",
    "LoggerDebugSink",
    "NullDebugSink",
    "HTTPBuilderLogger",
    "LoggingConfig",
    "HTTPBuilderException",
    "AssemblyError",
    "EmptyTargetError",
    "MalformedURLError",
    "UnsupportedBodyType",
    "BodyEncodingError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "RequestExecutionError",
    "InvalidTargetError",
    "DecodeError",
    "__version__",
]
