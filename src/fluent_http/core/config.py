"""
Система конфигурации для fluent-http.

Все конфиги immutable (frozen dataclasses): HTTPClient копирует их
в собственное изменяемое состояние при создании.
"""

from dataclasses import dataclass, field, replace
from typing import (
    Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union, TYPE_CHECKING,
)
from types import MappingProxyType
from importlib.metadata import version, PackageNotFoundError

from requests.adapters import BaseAdapter

if TYPE_CHECKING:
    from .logging import LoggingConfig
    from .response import Response, ResultState
    from .http_client import HTTPClient
    from .request import Request


try:
    _VERSION = version("fluent-http")
except PackageNotFoundError:
    _VERSION = "0.0.0-dev"

# User-Agent по умолчанию: если ни запрос, ни клиент его не задали
DEFAULT_USER_AGENT: str = f"fluent-http/{_VERSION}"

RetryCondition = Callable[[Optional['Response'], Optional[Exception]], bool]
ResultChecker = Callable[['Response'], 'ResultState']
RequestMiddleware = Callable[['HTTPClient', 'Request'], None]
ResponseMiddleware = Callable[['HTTPClient', 'Response'], None]
ErrorHook = Callable[['HTTPClient', 'Request', Optional['Response'], Exception], None]

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Конфигурация таймаутов.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)

    Examples:
        >>> TimeoutConfig(connect=5, read=30)
        >>> TimeoutConfig.coerce(10)  # connect=5, read=10
    """
    connect: float = 5
    read: float = 30

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ValueError("connect timeout must be positive")
        if self.read <= 0:
            raise ValueError("read timeout must be positive")

    def as_tuple(self) -> Tuple[float, float]:
        """Вернуть как (connect, read) для requests."""
        return (self.connect, self.read)

    def capped(self, remaining: Optional[float]) -> Tuple[float, float]:
        """(connect, read), ограниченные оставшимся временем до deadline."""
        if remaining is None:
            return self.as_tuple()
        remaining = max(remaining, 0.001)
        return (min(self.connect, remaining), min(self.read, remaining))

    @classmethod
    def coerce(cls, value: Union[float, Tuple[float, float], 'TimeoutConfig']) -> 'TimeoutConfig':
        """Число = read таймаут, кортеж = (connect, read)."""
        if isinstance(value, TimeoutConfig):
            return value
        if isinstance(value, tuple):
            return cls(connect=value[0], read=value[1])
        return cls(read=value)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RETRY CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RetryConfig:
    """
    Конфигурация retry стратегии.

    Args:
        count: Количество ДОПОЛНИТЕЛЬНЫХ попыток после первой (всего count + 1)
        interval: Фиксированная пауза между попытками (сек), без backoff
        condition: Предикат (response, error) -> bool; None = предикат по умолчанию

    Examples:
        >>> RetryConfig(count=3, interval=0.5)
        >>> RetryConfig(count=2, condition=lambda resp, err: err is not None)
    """
    count: int = 0
    interval: float = 1.0
    condition: Optional[RetryCondition] = None

    def __post_init__(self):
        """Валидация."""
        if self.count < 0:
            raise ValueError("retry count must be non-negative")
        if self.interval < 0:
            raise ValueError("retry interval must be non-negative")

    @property
    def max_attempts(self) -> int:
        """Всего попыток, включая первую."""
        return self.count + 1

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SECURITY CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class SecurityConfig:
    """
    TLS настройки транспорта.

    Args:
        verify_ssl: Проверять SSL сертификаты
        ca_bundle: Путь к CA bundle (переопределяет системный)
        client_cert: Клиентский сертификат: путь или (cert, key)

    Examples:
        >>> SecurityConfig(verify_ssl=False)  # Для тестов
        >>> SecurityConfig(ca_bundle="/etc/ssl/internal-ca.pem")
    """
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    client_cert: Optional[Union[str, Tuple[str, str]]] = None

    @property
    def verify(self) -> Union[bool, str]:
        """Значение для параметра verify в requests."""
        if self.verify_ssl and self.ca_bundle:
            return self.ca_bundle
        return self.verify_ssl

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _freeze_dict(d: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """
    Convert dict to immutable MappingProxyType.

    Example:
        >>> frozen = _freeze_dict({"X-API-Key": "secret"})
        >>> frozen["X-New"] = "value"  # Raises TypeError
    """
    if d is None:
        return MappingProxyType({})
    return MappingProxyType(dict(d))

@dataclass(frozen=True)
class ClientConfig:
    """
    Главная конфигурация HTTPClient.

    Args:
        base_url: Базовый URL (хвостовые слеши удаляются)
        timeout: Конфигурация таймаутов
        headers: Дефолтные заголовки
        query_params: Дефолтные query параметры
        path_params: Дефолтные path параметры ({key} в URL)
        user_agent: User-Agent клиента (None = DEFAULT_USER_AGENT)
        debug: Логировать заголовки и тела запросов/ответов
        allow_get_payload: Разрешить тело у GET/HEAD
        retry: Конфигурация retry
        security: TLS конфигурация
        proxies: Прокси {'http': ..., 'https': ...}
        transport: requests adapter, монтируется на http:// и https://
        before_request: Хуки перед отправкой
        after_response: Хуки после получения ответа
        on_error: Хук-уведомление о финальной ошибке
        common_error_result: Общий target для декодирования ошибок
        result_checker: Классификатор ответа (None = по статус коду)
        logging: Конфигурация логирования (None = без структурного логгера)

    Examples:
        >>> config = ClientConfig(base_url="https://api.example.com")
        >>> config = ClientConfig.create(timeout=60, retry_count=2)
    """
    base_url: str = ""
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    query_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    path_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    user_agent: Optional[str] = None
    debug: bool = False
    allow_get_payload: bool = False

    retry: RetryConfig = field(default_factory=RetryConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    proxies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    transport: Optional[BaseAdapter] = None

    before_request: Tuple[RequestMiddleware, ...] = ()
    after_response: Tuple[ResponseMiddleware, ...] = ()
    on_error: Optional[ErrorHook] = None
    common_error_result: Any = None
    result_checker: Optional[ResultChecker] = None

    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Normalize base_url and freeze mutable containers."""
        for name in ('headers', 'query_params', 'path_params', 'proxies'):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, _freeze_dict(value))

        for name in ('before_request', 'after_response'):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

        if self.base_url is None:
            object.__setattr__(self, 'base_url', "")
        elif self.base_url:
            object.__setattr__(self, 'base_url', self.base_url.rstrip('/'))

    @classmethod
    def create(
        cls,
        base_url: Optional[str] = None,
        timeout: Union[float, Tuple[float, float], TimeoutConfig] = 30,
        headers: Optional[Dict[str, str]] = None,
        query_params: Optional[Dict[str, str]] = None,
        path_params: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
        retry_count: int = 0,
        retry_interval: float = 1.0,
        retry_condition: Optional[RetryCondition] = None,
        verify_ssl: bool = True,
        proxies: Optional[Dict[str, str]] = None,
        before_request: Sequence[RequestMiddleware] = (),
        after_response: Sequence[ResponseMiddleware] = (),
        logging: Optional['LoggingConfig'] = None,
        **kwargs
    ) -> 'ClientConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            base_url: Базовый URL
            timeout: Таймаут (число, (connect, read) или TimeoutConfig)
            headers: Заголовки
            query_params: Query параметры
            path_params: Path параметры
            user_agent: User-Agent
            retry_count: Количество повторных попыток
            retry_interval: Пауза между попытками (сек)
            retry_condition: Retry предикат
            verify_ssl: Проверять SSL
            proxies: Прокси
            before_request: Before хуки
            after_response: After хуки
            logging: Конфигурация логирования
            **kwargs: Остальные поля ClientConfig

        Returns:
            ClientConfig instance

        Examples:
            >>> config = ClientConfig.create(timeout=60)
            >>> config = ClientConfig.create(timeout=(5, 60), retry_count=3)
        """
        return cls(
            base_url=base_url or "",
            timeout=TimeoutConfig.coerce(timeout),
            headers=headers or {},
            query_params=query_params or {},
            path_params=path_params or {},
            user_agent=user_agent,
            retry=RetryConfig(
                count=retry_count,
                interval=retry_interval,
                condition=retry_condition,
            ),
            security=SecurityConfig(verify_ssl=verify_ssl),
            proxies=proxies or {},
            before_request=tuple(before_request),
            after_response=tuple(after_response),
            logging=logging,
            **kwargs
        )

    def with_timeout(self, timeout: Union[float, Tuple[float, float], TimeoutConfig]) -> 'ClientConfig':
        """
        Создать новый конфиг с изменённым timeout.

        Example:
            >>> new_config = config.with_timeout(60)
        """
        return replace(self, timeout=TimeoutConfig.coerce(timeout))

    def with_retries(self, count: int, interval: Optional[float] = None) -> 'ClientConfig':
        """
        Создать новый конфиг с изменённым retry.

        Args:
            count: Количество повторных попыток (не включая первую)
            interval: Пауза между попытками (None = оставить текущую)

        Example:
            >>> new_config = config.with_retries(5)
        """
        retry_cfg = replace(
            self.retry,
            count=count,
            interval=self.retry.interval if interval is None else interval,
        )
        return replace(self, retry=retry_cfg)

    def with_headers(self, headers: Dict[str, str]) -> 'ClientConfig':
        """
        Создать новый конфиг с дополнительными заголовками.

        Example:
            >>> new_config = config.with_headers({"X-API-Key": "secret"})
        """
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)
