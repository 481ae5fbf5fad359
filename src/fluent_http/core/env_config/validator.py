"""
Pydantic validators for environment configuration.

Provides validated models for all configuration options.
"""

from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseModel):
    """Logging configuration from environment."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    format: Literal["json", "text"] = Field(default="text")
    enable_console: bool = Field(default=True)
    enable_file: bool = Field(default=False)
    file_path: Optional[str] = None
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="10MB")
    backup_count: int = Field(default=5, ge=0)
    enable_request_id: bool = Field(default=True)
    body_preview_limit: int = Field(default=300, gt=0)

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v: Optional[str], info) -> Optional[str]:
        """Validate file_path is required when enable_file=True."""
        if info.data.get('enable_file') and not v:
            raise ValueError("file_path is required when enable_file=True")
        return v


class FluentHTTPSettings(BaseSettings):
    """
    HTTPClient configuration from environment variables.

    Reads from:
    1. Environment variables (FLUENT_HTTP_*)
    2. .env file
    3. Defaults

    Example .env file:
        FLUENT_HTTP_BASE_URL=https://api.example.com
        FLUENT_HTTP_TIMEOUT_CONNECT=5.0
        FLUENT_HTTP_TIMEOUT_READ=10.0
        FLUENT_HTTP_RETRY_COUNT=2
        FLUENT_HTTP_RETRY_INTERVAL=0.5
        FLUENT_HTTP_LOG_LEVEL=INFO

    Usage:
        >>> settings = FluentHTTPSettings()
        >>> settings.base_url
        'https://api.example.com'
    """

    model_config = SettingsConfigDict(
        env_prefix='FLUENT_HTTP_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Base configuration
    base_url: str = Field(default="", description="Base URL for all requests")
    user_agent: Optional[str] = Field(default=None)
    debug: bool = Field(default=False)
    allow_get_payload: bool = Field(default=False)

    # Timeouts (flat structure for env vars)
    timeout_connect: float = Field(default=5.0, gt=0)
    timeout_read: float = Field(default=30.0, gt=0)

    # Retry
    retry_count: int = Field(default=0, ge=0, le=10)
    retry_interval: float = Field(default=1.0, ge=0)

    # Security
    security_verify_ssl: bool = Field(default=True)
    security_ca_bundle: Optional[str] = None
    security_client_cert: Optional[str] = None
    security_client_key: Optional[str] = None

    # Proxy
    proxy: Optional[str] = Field(default=None, description="Proxy URL for http and https")

    # Logging
    log_enabled: bool = Field(default=False, description="Attach own handlers to the client logger")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_request_id: bool = Field(default=True)
    log_body_preview_limit: int = Field(default=300, gt=0)

    @field_validator('security_client_key')
    @classmethod
    def validate_client_key(cls, v: Optional[str], info) -> Optional[str]:
        """Key without a certificate is meaningless."""
        if v and not info.data.get('security_client_cert'):
            raise ValueError("security_client_key requires security_client_cert")
        return v

    @property
    def client_cert(self):
        """Value for SecurityConfig.client_cert: path or (cert, key)."""
        if self.security_client_cert and self.security_client_key:
            return (self.security_client_cert, self.security_client_key)
        return self.security_client_cert

    def to_logging_settings(self, **overrides) -> Optional[LoggingSettings]:
        """
        Convert to LoggingSettings if logging enabled.

        ``overrides`` use the field names of this model (``log_level``,
        ``log_enabled``, ...) and win over the loaded values.
        """
        if not overrides.get('log_enabled', self.log_enabled):
            return None

        return LoggingSettings(**{
            name: overrides.get(f'log_{name}', getattr(self, f'log_{name}'))
            for name in LoggingSettings.model_fields
        })
