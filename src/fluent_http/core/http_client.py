# src/fluent_http/core/http_client.py
import itertools
from dataclasses import replace
from http.cookiejar import Cookie
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

import requests
from requests.adapters import BaseAdapter, HTTPAdapter

from . import url_builder
from .codecs import Marshal, Unmarshal, json_marshal, json_unmarshal, xml_marshal, xml_unmarshal
from .config import (
    ClientConfig,
    ErrorHook,
    RequestMiddleware,
    ResponseMiddleware,
    ResultChecker,
    RetryCondition,
    RetryConfig,
    SecurityConfig,
    TimeoutConfig,
)
from .executor import Executor
from .logging import ClientLogger, LoggingConfig, LogLevel
from .request import Request
from .response import Response
from .session_manager import ThreadSafeSessionManager
from .utils import canonical_header_key, copy_values, new_headers, set_value

# Суффиксы логгеров клонов
_clone_ids = itertools.count(1)


def _logger_name(base_url: str) -> str:
    """fluent_http.client или fluent_http.client.<host> при заданном base_url."""
    host = urlsplit(base_url).netloc if base_url else ""
    return f"fluent_http.client.{host}" if host else "fluent_http.client"


class HTTPClient:
    """
    Reusable HTTP client with a fluent request builder.

    The client holds defaults shared by all its requests (base URL,
    headers, query/path params, form data, cookies, timeout, TLS, retry
    policy, hooks, codecs). Every setter mutates the client and returns it.

    Thread-safety: sending requests from many threads is safe (each thread
    gets its own requests.Session, all sharing one cookie jar). Setters are
    NOT synchronized: configure the client before sharing it, or give each
    configuration variant its own ``clone()``.

    Example:
        >>> client = (
        ...     HTTPClient(base_url="https://api.example.com")
        ...     .set_common_header("X-Api-Version", "2")
        ...     .set_retry_count(2)
        ...     .set_retry_interval(0.5)
        ... )
        >>> resp = client.r().set_success_result(User).get("/users/42")
        >>> resp.result.name
        'John'
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        **kwargs
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL (overrides config.base_url when both are given)
            config: ClientConfig instance
            **kwargs: ClientConfig.create() parameters, used when config is None
        """
        if config is None:
            config = ClientConfig.create(base_url=base_url, **kwargs)
        elif kwargs:
            raise TypeError("pass either config or ClientConfig.create() keyword arguments, not both")
        elif base_url is not None:
            config = replace(config, base_url=base_url)

        self._config = config

        self.base_url: str = config.base_url
        self.headers = new_headers()
        for key, value in config.headers.items():
            set_value(self.headers, canonical_header_key(key), value)
        self.query_params: Dict[str, List[str]] = {k: [str(v)] for k, v in config.query_params.items()}
        self.path_params: Dict[str, str] = {k: str(v) for k, v in config.path_params.items()}
        self.form_data: Dict[str, List[str]] = {}
        self.cookies: List[Cookie] = []

        self.user_agent: str = config.user_agent or ""
        self.timeout: TimeoutConfig = config.timeout
        self.debug: bool = config.debug
        self.allow_get_payload: bool = config.allow_get_payload

        self.retry: RetryConfig = config.retry
        self.security: SecurityConfig = config.security
        self.proxies: Dict[str, str] = dict(config.proxies)
        self.transport: Optional[BaseAdapter] = config.transport

        self.before_request: List[RequestMiddleware] = list(config.before_request)
        self.after_response: List[ResponseMiddleware] = list(config.after_response)
        self.on_error_hook: Optional[ErrorHook] = config.on_error
        self.common_error_result: Any = config.common_error_result
        self.result_checker: Optional[ResultChecker] = config.result_checker

        self.json_marshal: Marshal = json_marshal
        self.json_unmarshal: Unmarshal = json_unmarshal
        self.xml_marshal: Marshal = xml_marshal
        self.xml_unmarshal: Unmarshal = xml_unmarshal

        self.logger = ClientLogger(config.logging, name=_logger_name(config.base_url))
        self._session_manager = ThreadSafeSessionManager(self._create_session)
        self._executor = Executor(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<HTTPClient base_url={self.base_url!r}>"

    def _create_session(self) -> requests.Session:
        """Create a session with the configured transport mounted."""
        session = requests.Session()
        adapter = self.transport if self.transport is not None else HTTPAdapter(max_retries=0)
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        return session

    # ==================== Управление жизненным циклом ====================

    def close(self):
        """
        Close all thread-local sessions and the logger's own handlers.

        Safe to call multiple times.
        """
        self.logger.close()
        self._session_manager.close_all()

    def clone(self) -> 'HTTPClient':
        """
        Independent copy of this client.

        Every mutable container (headers, params, form data, cookies, hook
        lists, proxies) is copied; the clone gets its own sessions and an
        empty cookie jar. Codecs and the hooks themselves are shared. The clone
        logs through a child of this client's logger, so its records reach
        the same handlers while close() and set_logging() on the clone
        leave them alone.

        Example:
            >>> admin = client.clone().set_common_header("X-Role", "admin")
        """
        cloned = object.__new__(HTTPClient)
        cloned.__dict__.update(self.__dict__)

        cloned.headers = copy_values(self.headers)
        cloned.query_params = copy_values(self.query_params)
        cloned.path_params = dict(self.path_params)
        cloned.form_data = copy_values(self.form_data)
        cloned.cookies = list(self.cookies)
        cloned.proxies = dict(self.proxies)
        cloned.before_request = list(self.before_request)
        cloned.after_response = list(self.after_response)

        cloned.logger = self.logger.child(f"clone-{next(_clone_ids)}")
        cloned._session_manager = ThreadSafeSessionManager(cloned._create_session)
        cloned._executor = Executor(cloned)
        return cloned

    # ==================== Базовые настройки ====================

    def set_base_url(self, base_url: str) -> 'HTTPClient':
        self.base_url = (base_url or "").rstrip('/')
        return self

    def set_timeout(self, timeout: Union[float, Tuple[float, float], TimeoutConfig]) -> 'HTTPClient':
        """Число = read таймаут, кортеж = (connect, read)."""
        self.timeout = TimeoutConfig.coerce(timeout)
        return self

    def set_user_agent(self, user_agent: str) -> 'HTTPClient':
        self.user_agent = user_agent
        return self

    # ==================== Общие параметры запросов ====================

    def set_common_header(self, key: str, value: str) -> 'HTTPClient':
        """Header for all requests (key is canonicalized, replaces earlier values)."""
        set_value(self.headers, canonical_header_key(key), value)
        return self

    def set_common_headers(self, headers: Mapping[str, str]) -> 'HTTPClient':
        for key, value in headers.items():
            self.set_common_header(key, value)
        return self

    def set_common_query_param(self, key: str, value: str) -> 'HTTPClient':
        set_value(self.query_params, key, value)
        return self

    def set_common_query_params(self, params: Mapping[str, str]) -> 'HTTPClient':
        for key, value in params.items():
            set_value(self.query_params, key, value)
        return self

    def set_common_path_param(self, key: str, value: str) -> 'HTTPClient':
        self.path_params[key] = str(value)
        return self

    def set_common_path_params(self, params: Mapping[str, str]) -> 'HTTPClient':
        for key, value in params.items():
            self.path_params[key] = str(value)
        return self

    def set_common_form_data(self, data: Mapping[str, str]) -> 'HTTPClient':
        for key, value in data.items():
            set_value(self.form_data, key, value)
        return self

    def set_common_cookies(self, *cookies: Cookie) -> 'HTTPClient':
        """Cookies sent with every request (before request-level cookies)."""
        self.cookies.extend(cookies)
        return self

    # ==================== Debug ====================

    def enable_debug(self) -> 'HTTPClient':
        """Log request/response details (masked headers, body preview) at DEBUG."""
        self.debug = True
        return self

    def disable_debug(self) -> 'HTTPClient':
        self.debug = False
        return self

    def dev_mode(self) -> 'HTTPClient':
        """
        Debug mode plus a console DEBUG logger if no logging is configured.
        """
        if self.logger.config is None:
            self.logger = ClientLogger(
                LoggingConfig(level=LogLevel.DEBUG),
                name=self.logger.name,
            )
        return self.enable_debug()

    def set_logging(self, config: Optional[LoggingConfig]) -> 'HTTPClient':
        """Replace the structured logger configuration."""
        self.logger.close()
        self.logger = ClientLogger(config, name=self.logger.name)
        return self

    def enable_allow_get_method_payload(self) -> 'HTTPClient':
        self.allow_get_payload = True
        return self

    def disable_allow_get_method_payload(self) -> 'HTTPClient':
        """GET/HEAD bodies are dropped (default)."""
        self.allow_get_payload = False
        return self

    # ==================== Транспорт ====================

    def set_tls_client_config(
        self,
        verify_ssl: bool = True,
        ca_bundle: Optional[str] = None,
        client_cert: Optional[Union[str, Tuple[str, str]]] = None,
    ) -> 'HTTPClient':
        """
        Args:
            verify_ssl: Verify server certificates
            ca_bundle: CA bundle path overriding the system store
            client_cert: Client certificate path or (cert, key) paths
        """
        self.security = SecurityConfig(
            verify_ssl=verify_ssl,
            ca_bundle=ca_bundle,
            client_cert=client_cert,
        )
        return self

    def enable_insecure_skip_verify(self) -> 'HTTPClient':
        self.security = replace(self.security, verify_ssl=False)
        return self

    def disable_insecure_skip_verify(self) -> 'HTTPClient':
        self.security = replace(self.security, verify_ssl=True)
        return self

    def set_proxy(self, proxy: Union[str, Mapping[str, str], None]) -> 'HTTPClient':
        """
        Proxy for all requests.

        Args:
            proxy: One proxy URL for http and https, a requests-style
                ``{'http': ..., 'https': ...}`` mapping, or None to clear

        Raises:
            ValueError: If a proxy URL has no scheme or host
        """
        if not proxy:
            self.proxies = {}
            return self

        proxies = {'http': proxy, 'https': proxy} if isinstance(proxy, str) else dict(proxy)
        for url in proxies.values():
            parts = urlsplit(url)
            if not parts.scheme or not parts.netloc:
                raise ValueError(f"Invalid proxy URL: {url}")
        self.proxies = proxies
        return self

    def set_transport(self, adapter: Optional[BaseAdapter]) -> 'HTTPClient':
        """
        Mount a custom requests adapter for http:// and https://.

        Existing sessions are dropped; cookies are kept.
        """
        self.transport = adapter
        self._session_manager.reset()
        return self

    # ==================== Retry ====================

    def set_retry_count(self, count: int) -> 'HTTPClient':
        """Additional attempts after the first one (0 disables retry)."""
        self.retry = replace(self.retry, count=count)
        return self

    def set_retry_interval(self, interval: float) -> 'HTTPClient':
        """Fixed pause between attempts in seconds."""
        self.retry = replace(self.retry, interval=interval)
        return self

    def set_retry_condition(self, condition: Optional[RetryCondition]) -> 'HTTPClient':
        """Predicate ``(response, error) -> bool``; None restores the default."""
        self.retry = replace(self.retry, condition=condition)
        return self

    # ==================== Результаты и хуки ====================

    def set_common_error_result(self, target: Any) -> 'HTTPClient':
        """Error decode target used when a request sets none."""
        self.common_error_result = target
        return self

    def set_result_state_check_func(self, checker: Optional[ResultChecker]) -> 'HTTPClient':
        """Classifier ``response -> ResultState``; None restores the default."""
        self.result_checker = checker
        return self

    def on_error(self, hook: ErrorHook) -> 'HTTPClient':
        """
        Notification ``hook(client, request, response, error)`` for calls that
        end with a terminal error. Cannot change the outcome.
        """
        self.on_error_hook = hook
        return self

    def on_before_request(self, hook: RequestMiddleware) -> 'HTTPClient':
        """
        Append ``hook(client, request)``, run before each attempt.

        A hook fails by raising; the call is then aborted without retry.
        """
        self.before_request.append(hook)
        return self

    def on_after_response(self, hook: ResponseMiddleware) -> 'HTTPClient':
        """
        Append ``hook(client, response)``, run after each received response.

        A raising hook becomes the attempt's terminal error (retry-eligible).
        """
        self.after_response.append(hook)
        return self

    # ==================== Кодеки ====================

    def set_json_marshal(self, marshal: Marshal) -> 'HTTPClient':
        self.json_marshal = marshal
        return self

    def set_json_unmarshal(self, unmarshal: Unmarshal) -> 'HTTPClient':
        self.json_unmarshal = unmarshal
        return self

    def set_xml_marshal(self, marshal: Marshal) -> 'HTTPClient':
        self.xml_marshal = marshal
        return self

    def set_xml_unmarshal(self, unmarshal: Unmarshal) -> 'HTTPClient':
        self.xml_unmarshal = unmarshal
        return self

    # ==================== Запросы ====================

    def r(self) -> Request:
        """New empty request bound to this client."""
        return Request(self)

    def get(self, url: Optional[str] = None) -> Request:
        """GET request builder; send it with ``.send()`` / ``.execute()``."""
        return Request(self, 'GET', url or "")

    def post(self, url: Optional[str] = None) -> Request:
        return Request(self, 'POST', url or "")

    def put(self, url: Optional[str] = None) -> Request:
        return Request(self, 'PUT', url or "")

    def patch(self, url: Optional[str] = None) -> Request:
        return Request(self, 'PATCH', url or "")

    def delete(self, url: Optional[str] = None) -> Request:
        return Request(self, 'DELETE', url or "")

    def head(self, url: Optional[str] = None) -> Request:
        return Request(self, 'HEAD', url or "")

    def options(self, url: Optional[str] = None) -> Request:
        return Request(self, 'OPTIONS', url or "")

    def execute(self, request: Request) -> Response:
        """Run a request through the retry loop (see ``Request.execute``)."""
        return self._executor.execute(request)

    def build_url(self, request: Request) -> str:
        """Final URL of a request with this client's base URL and params."""
        return url_builder.build_url(
            request.raw_url,
            path_params=request.path_params,
            query_params=request.query_params,
            base_url=self.base_url,
            client_path_params=self.path_params,
            client_query_params=self.query_params,
        )

    # ==================== Куки ====================

    def get_cookies(self) -> Dict[str, str]:
        """Cookies stored by the server in this client's jar."""
        return self._session_manager.cookie_jar.get_dict()

    def clear_cookies(self):
        self._session_manager.cookie_jar.clear()

    # ==================== Свойства ====================

    @property
    def session(self) -> requests.Session:
        """
        requests.Session of the current thread (created lazily).
        """
        return self._session_manager.get_session()

    @property
    def cookie_jar(self) -> requests.cookies.RequestsCookieJar:
        """Jar shared by all sessions of this client."""
        return self._session_manager.cookie_jar

    @property
    def config(self) -> ClientConfig:
        """Configuration the client was created from (setters do not update it)."""
        return self._config
