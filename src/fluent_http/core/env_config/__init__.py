"""
Environment configuration for fluent-http.

Load ClientConfig from .env files and FLUENT_HTTP_* environment variables.

Example:
    >>> from fluent_http import HTTPClient
    >>> from fluent_http.core.env_config import load_from_env
    >>>
    >>> client = HTTPClient(config=load_from_env())
    >>>
    >>> # Load with overrides
    >>> config = load_from_env(env_file=".env.staging", retry_count=3)
"""

from .loader import load_from_env, print_config_summary
from .validator import FluentHTTPSettings, LoggingSettings

__all__ = [
    "load_from_env",
    "print_config_summary",
    "FluentHTTPSettings",
    "LoggingSettings",
]
