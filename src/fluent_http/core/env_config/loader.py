"""
Configuration loader from environment variables and .env files.

Main entry point for loading configuration.
"""

from typing import Optional

from ..config import (
    ClientConfig,
    TimeoutConfig,
    RetryConfig,
    SecurityConfig,
)
from ..logging.config import LoggingConfig
from .validator import FluentHTTPSettings
from ...utils.sanitizer import mask_url


def load_from_env(env_file: Optional[str] = None, **overrides) -> ClientConfig:
    """
    Load ClientConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters
    2. Environment variables (FLUENT_HTTP_*)
    3. .env file
    4. Defaults

    Args:
        env_file: Custom .env file path (default: ./.env)
        **overrides: Explicit overrides, named like FluentHTTPSettings fields

    Returns:
        ClientConfig instance

    Raises:
        pydantic.ValidationError: Invalid value in the environment

    Example:
        >>> config = load_from_env()
        >>> client = HTTPClient(config=config)

        >>> config = load_from_env(
        ...     env_file=".env.staging",
        ...     base_url="https://custom.api.com"  # Override
        ... )
    """
    settings = FluentHTTPSettings(_env_file=env_file) if env_file else FluentHTTPSettings()

    def value(name: str):
        return overrides.get(name, getattr(settings, name))

    timeout = TimeoutConfig(
        connect=float(value('timeout_connect')),
        read=float(value('timeout_read')),
    )

    retry = RetryConfig(
        count=int(value('retry_count')),
        interval=float(value('retry_interval')),
    )

    security = SecurityConfig(
        verify_ssl=value('security_verify_ssl'),
        ca_bundle=value('security_ca_bundle'),
        client_cert=overrides.get('security_client_cert', settings.client_cert),
    )

    proxy = value('proxy')
    proxies = {'http': proxy, 'https': proxy} if proxy else {}

    # Build logging config (if enabled)
    logging_config = None
    logging_settings = settings.to_logging_settings(**overrides)
    if logging_settings is not None:
        logging_config = LoggingConfig.create(**logging_settings.model_dump())

    return ClientConfig(
        base_url=value('base_url'),
        timeout=timeout,
        user_agent=value('user_agent'),
        debug=value('debug'),
        allow_get_payload=value('allow_get_payload'),
        retry=retry,
        security=security,
        proxies=proxies,
        logging=logging_config,
    )


def print_config_summary(config: ClientConfig):
    """
    Print configuration summary.

    Useful for debugging and verification. Proxy credentials are masked.

    Example:
        >>> print_config_summary(load_from_env())
        ClientConfig:
          base_url: https://api.example.com
          timeout: connect=5.0s, read=30.0s
          ...
    """
    print("ClientConfig:")
    print(f"  base_url: {config.base_url}")
    print(f"  timeout: connect={config.timeout.connect}s, read={config.timeout.read}s")
    print(f"  retry: count={config.retry.count}, interval={config.retry.interval}s")
    print(f"  security: verify_ssl={config.security.verify_ssl}, ca_bundle={config.security.ca_bundle}")
    if config.proxies:
        print(f"  proxies: { {k: mask_url(v) for k, v in config.proxies.items()} }")

    if config.logging:
        print(f"  logging: level={config.logging.level.value}, format={config.logging.format.value}")
        if config.logging.enable_file:
            print(f"    file: {config.logging.file_path}")
