"""Core fluent-http модули."""

from .config import (
    DEFAULT_USER_AGENT,
    TimeoutConfig,
    RetryConfig,
    SecurityConfig,
    ClientConfig,
)
from .body import Body, BodyKind, EncodedBody, encode_body
from .codecs import json_marshal, json_unmarshal, xml_marshal, xml_unmarshal
from .context import RequestContext
from .retry_engine import RetryEngine, default_retry_condition
from .exceptions import (
    HTTPClientException,
    ValidationError,
    URLParseError,
    EncodeError,
    HookError,
    TransportError,
    TimeoutError,
    ConnectionError,
    ProxyError,
    SSLError,
    CancelledError,
    BodyReadError,
    DecodeError,
    classify_requests_exception,
)
from .request import Request
from .response import Response, ResultState, default_result_checker
from .http_client import HTTPClient

__all__ = [
    # Config
    "DEFAULT_USER_AGENT",
    "TimeoutConfig",
    "RetryConfig",
    "SecurityConfig",
    "ClientConfig",
    # Body / codecs
    "Body",
    "BodyKind",
    "EncodedBody",
    "encode_body",
    "json_marshal",
    "json_unmarshal",
    "xml_marshal",
    "xml_unmarshal",
    # Retry
    "RetryEngine",
    "default_retry_condition",
    # Core
    "HTTPClient",
    "Request",
    "Response",
    "ResultState",
    "default_result_checker",
    "RequestContext",
    # Exceptions
    "HTTPClientException",
    "ValidationError",
    "URLParseError",
    "EncodeError",
    "HookError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "SSLError",
    "CancelledError",
    "BodyReadError",
    "DecodeError",
    "classify_requests_exception",
]
