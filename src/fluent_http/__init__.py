"""fluent-http - fluent HTTP client builder on top of requests."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.http_client import HTTPClient
from .core.request import Request
from .core.response import Response, ResultState
from .core.context import RequestContext
from .core.config import (
    DEFAULT_USER_AGENT,
    ClientConfig,
    TimeoutConfig,
    RetryConfig,
    SecurityConfig,
)
from .core.exceptions import (
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
)
from .core.logging import LoggingConfig
from .core.env_config import load_from_env

# Set up logging - add NullHandler to prevent "No handler found" warnings
# Users can configure logging themselves using logging.getLogger('fluent_http')
logging.getLogger('fluent_http').addHandler(logging.NullHandler())

# Version info - read from package metadata (single source of truth in pyproject.toml)
try:
    __version__ = version("fluent-http")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__license__ = "MIT"


def new() -> HTTPClient:
    """
    New client with default settings.

    Example:
        >>> import fluent_http
        >>> resp = fluent_http.new().r().get("https://httpbin.org/get")
    """
    return HTTPClient()


# All public exports
__all__ = [
    # Core
    "new",
    "HTTPClient",
    "Request",
    "Response",
    "ResultState",
    "RequestContext",

    # Config
    "DEFAULT_USER_AGENT",
    "ClientConfig",
    "TimeoutConfig",
    "RetryConfig",
    "SecurityConfig",
    "LoggingConfig",
    "load_from_env",

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
]
