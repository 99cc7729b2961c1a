"""Core HTTP Builder модули."""

from .config import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT,
    RetryConfig,
    TimeoutConfig,
    TransportConfig,
)
from .client import Client
from .request import PreparedRequest, Request
from .response import Response
from .executor import ExecutionEngine, ExecutionState
from .retry_engine import RetryEngine
from .buffer_pool import BufferPool
from .debug import DebugSink, LoggerDebugSink, NullDebugSink
from .negotiation import (
    Body,
    RawBody,
    TextBody,
    JsonBody,
    FormBody,
    XmlBody,
    StreamBody,
    EncodedBody,
    ContentNegotiator,
    detect_content_type,
    is_json_type,
    is_xml_type,
)
from .encoding import encode_params, merge_params, append_query, parse_query_string
from .transport import Transport, TransportResponse, RequestsTransport, HttpxTransport
from .exceptions import (
    HTTPBuilderException,
    AssemblyError,
    EmptyTargetError,
    MalformedURLError,
    UnsupportedBodyType,
    BodyEncodingError,
    TransportError,
    TimeoutError,
    ConnectionError,
    ProxyError,
    SSLError,
    RequestExecutionError,
    InvalidTargetError,
    DecodeError,
    ConfigurationError,
    classify_requests_exception,
)

__all__ = [
    # Config
    "DEFAULT_MAX_CONCURRENT",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_TIMEOUT",
    "RetryConfig",
    "TimeoutConfig",
    "TransportConfig",
    # Core
    "Client",
    "Request",
    "PreparedRequest",
    "Response",
    "ExecutionEngine",
    "ExecutionState",
    "RetryEngine",
    "BufferPool",
    # Debug
    "DebugSink",
    "LoggerDebugSink",
    "NullDebugSink",
    # Negotiation
    "Body",
    "RawBody",
    "TextBody",
    "JsonBody",
    "FormBody",
    "XmlBody",
    "StreamBody",
    "EncodedBody",
    "ContentNegotiator",
    "detect_content_type",
    "is_json_type",
    "is_xml_type",
    # Encoding
    "encode_params",
    "merge_params",
    "append_query",
    "parse_query_string",
    # Transport
    "Transport",
    "TransportResponse",
    "RequestsTransport",
    "HttpxTransport",
    # Exceptions
    "HTTPBuilderException",
    "AssemblyError",
    "EmptyTargetError",
    "MalformedURLError",
    "UnsupportedBodyType",
    "BodyEncodingError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "SSLError",
    "RequestExecutionError",
    "InvalidTargetError",
    "DecodeError",
    "ConfigurationError",
    "classify_requests_exception",
]
