"""
Fluent request builder.

A Request is owned by the call stack that builds and sends it; never share
one Request across concurrent sends (use ``clone()``).
"""

from http.cookiejar import Cookie
from typing import (
    IO, TYPE_CHECKING, Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union,
)

from requests.cookies import create_cookie

from .body import Body, BodyKind
from .config import TimeoutConfig
from .context import RequestContext
from .exceptions import URLParseError, ValidationError
from .url_builder import build_url
from .utils import (
    add_value, canonical_header_key, copy_values, new_headers, parse_query, set_value,
)

if TYPE_CHECKING:
    from .http_client import HTTPClient
    from .response import Response

UploadCallback = Callable[[int, int], None]

METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS')


class Request:
    """
    Per-call request descriptor with chainable setters.

    Every setter mutates the request and returns it, so calls chain:

    Example:
        >>> resp = (
        ...     client.r()
        ...     .set_path_param("id", "42")
        ...     .set_query_param("expand", "profile")
        ...     .set_bearer_token("secret")
        ...     .set_success_result(User)
        ...     .get("/users/{id}")
        ... )
        >>> resp.result.name
        'John'
    """

    def __init__(self, client: Optional['HTTPClient'] = None, method: str = "", url: str = ""):
        self.client = client
        self._method = method.upper()
        self._url = url
        self.context = RequestContext()

        self._headers = new_headers()
        self.query_params: dict = {}
        self.path_params: dict = {}
        self.form_data: dict = {}
        self.cookies: List[Cookie] = []

        self.body: Optional[Body] = None
        self.user_agent = ""
        self.basic_auth: Optional[Tuple[str, str]] = None
        self.bearer_token = ""
        self.timeout: Optional[TimeoutConfig] = None

        self.success_result: Any = None
        self.error_result: Any = None
        self.output_path: Optional[str] = None
        self.upload_callback: Optional[UploadCallback] = None
        self.tracer: Any = None
        self.span_name = ""

    # ==================== Контекст ====================

    def set_context(self, context: RequestContext) -> 'Request':
        """Attach a deadline/cancellation context."""
        self.context = context
        return self

    def set_timeout(self, timeout: Union[float, Tuple[float, float], TimeoutConfig]) -> 'Request':
        """Per-request timeout overriding the client's."""
        self.timeout = TimeoutConfig.coerce(timeout)
        return self

    # ==================== Заголовки ====================

    def set_header(self, key: str, value: str) -> 'Request':
        """Set a header (key is canonicalized), replacing earlier values."""
        set_value(self._headers, canonical_header_key(key), value)
        return self

    def set_headers(self, headers: Mapping[str, str]) -> 'Request':
        for key, value in headers.items():
            self.set_header(key, value)
        return self

    def set_header_verbatim(self, key: str, value: str) -> 'Request':
        """Set a header keeping the key exactly as given."""
        set_value(self._headers, key, value)
        return self

    def add_header(self, key: str, value: str) -> 'Request':
        """Add a value to a header, keeping earlier values."""
        add_value(self._headers, canonical_header_key(key), value)
        return self

    def set_user_agent(self, user_agent: str) -> 'Request':
        """User-Agent for this request (beats the client's)."""
        self.user_agent = user_agent
        return self

    # ==================== Параметры ====================

    def set_query_param(self, key: str, value: str) -> 'Request':
        set_value(self.query_params, key, value)
        return self

    def set_query_params(self, params: Mapping[str, str]) -> 'Request':
        for key, value in params.items():
            set_value(self.query_params, key, value)
        return self

    def add_query_param(self, key: str, value: str) -> 'Request':
        add_value(self.query_params, key, value)
        return self

    def set_query_params_from_values(self, params: Mapping[str, Iterable[str]]) -> 'Request':
        """Add every value of a multimap."""
        for key, values in params.items():
            for value in values:
                add_value(self.query_params, key, value)
        return self

    def set_query_string(self, query: str) -> 'Request':
        """Replace all request query params with the parsed string."""
        self.query_params = parse_query(query.lstrip('?'))
        return self

    def set_path_param(self, key: str, value: str) -> 'Request':
        self.path_params[key] = str(value)
        return self

    def set_path_params(self, params: Mapping[str, str]) -> 'Request':
        for key, value in params.items():
            self.path_params[key] = str(value)
        return self

    def set_form_data(self, data: Mapping[str, str]) -> 'Request':
        for key, value in data.items():
            set_value(self.form_data, key, value)
        return self

    def set_form_data_from_values(self, data: Mapping[str, Iterable[str]]) -> 'Request':
        for key, values in data.items():
            for value in values:
                add_value(self.form_data, key, value)
        return self

    # ==================== Тело ====================

    def set_body(self, body: Any) -> 'Request':
        """Set the body, inferring its kind (see ``Body.infer``)."""
        self.body = Body.infer(body)
        return self

    def set_body_bytes(self, body: bytes) -> 'Request':
        self.body = Body(BodyKind.BYTES, bytes(body))
        return self

    def set_body_string(self, body: str) -> 'Request':
        self.body = Body(BodyKind.STRING, body)
        return self

    def set_body_reader(self, body: IO) -> 'Request':
        """
        Stream the body from a file-like object (read by the transport).

        A seekable stream is rewound to its starting position before each
        retry. A non-seekable one is consumed by the first attempt, so
        retries of such a request send an empty body.
        """
        self.body = Body(BodyKind.STREAM, body)
        return self

    def set_body_json(self, body: Any) -> 'Request':
        self.body = Body(BodyKind.JSON, body)
        return self

    def set_body_xml(self, body: Any) -> 'Request':
        self.body = Body(BodyKind.XML, body)
        return self

    # ==================== Аутентификация ====================

    def set_basic_auth(self, username: str, password: str) -> 'Request':
        self.basic_auth = (username, password)
        return self

    def set_bearer_token(self, token: str) -> 'Request':
        self.bearer_token = token
        return self

    def set_auth_token(self, token: str) -> 'Request':
        """Alias for ``set_bearer_token``."""
        return self.set_bearer_token(token)

    # ==================== Куки ====================

    def set_cookie(self, name: str, value: str, **kwargs: Any) -> 'Request':
        """Attach a cookie (kwargs go to ``requests.cookies.create_cookie``)."""
        self.cookies.append(create_cookie(name, value, **kwargs))
        return self

    def set_cookies(self, *cookies: Cookie) -> 'Request':
        self.cookies.extend(cookies)
        return self

    # ==================== Результаты ====================

    def set_success_result(self, target: Any) -> 'Request':
        """Decode target for SUCCESS responses (type, dict/list or model instance)."""
        self.success_result = target
        return self

    def set_result(self, target: Any) -> 'Request':
        """Alias for ``set_success_result``."""
        return self.set_success_result(target)

    def set_error_result(self, target: Any) -> 'Request':
        """Decode target for ERROR responses (best-effort)."""
        self.error_result = target
        return self

    def set_error(self, target: Any) -> 'Request':
        """Alias for ``set_error_result``."""
        return self.set_error_result(target)

    # ==================== Прочее ====================

    def set_tracer(self, tracer: Any, span_name: str) -> 'Request':
        """Trace the call with an OpenTelemetry tracer."""
        self.tracer = tracer
        self.span_name = span_name
        return self

    def set_output(self, file_path: str) -> 'Request':
        """Stream the response body into ``file_path`` instead of memory."""
        self.output_path = file_path
        return self

    def set_upload_callback(self, callback: UploadCallback) -> 'Request':
        """Upload progress callback ``callback(written, total)``."""
        self.upload_callback = callback
        return self

    def set_method(self, method: str) -> 'Request':
        self._method = method.upper()
        return self

    def set_url(self, url: str) -> 'Request':
        self._url = url
        return self

    # ==================== Терминальные методы ====================

    def _send(self, method: str, url: Optional[str]) -> 'Response':
        if url is not None:
            self._url = url
        self._method = method
        return self.execute()

    def get(self, url: Optional[str] = None) -> 'Response':
        return self._send('GET', url)

    def post(self, url: Optional[str] = None) -> 'Response':
        return self._send('POST', url)

    def put(self, url: Optional[str] = None) -> 'Response':
        return self._send('PUT', url)

    def patch(self, url: Optional[str] = None) -> 'Response':
        return self._send('PATCH', url)

    def delete(self, url: Optional[str] = None) -> 'Response':
        return self._send('DELETE', url)

    def head(self, url: Optional[str] = None) -> 'Response':
        return self._send('HEAD', url)

    def options(self, url: Optional[str] = None) -> 'Response':
        return self._send('OPTIONS', url)

    def execute(self) -> 'Response':
        """
        Send the request through its client.

        Returns:
            Response of the last attempt

        Raises:
            HTTPClientException: Terminal error of the call; ``error.response``
                holds the last attempt's Response when one exists
        """
        if self.client is None:
            raise ValidationError("Request is not bound to a client")
        return self.client.execute(self)

    do = execute
    send = execute

    # ==================== Инспекция ====================

    @property
    def method(self) -> str:
        return self._method

    @property
    def raw_url(self) -> str:
        """URL template as set by the caller."""
        return self._url

    @property
    def url(self) -> str:
        """Final URL after base URL, path and query merging (template on failure)."""
        try:
            if self.client is None:
                return build_url(self._url, self.path_params, self.query_params)
            return self.client.build_url(self)
        except URLParseError:
            return self._url

    @property
    def headers(self):
        """Request-level headers (case-insensitive multimap)."""
        return self._headers

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If the method or URL is missing or the method is unknown
        """
        if not self._method:
            raise ValidationError("HTTP method is required")
        if self._method not in METHODS:
            raise ValidationError(f"Unsupported HTTP method: {self._method}")
        if not self._url:
            raise ValidationError("URL is required")

    def clone(self) -> 'Request':
        """
        Copy of this request sharing no mutable containers with it.

        The client, body payload, result targets, callbacks and context are
        shared by reference.
        """
        cloned = Request(self.client, self._method, self._url)
        cloned.context = self.context
        cloned._headers = copy_values(self._headers)
        cloned.query_params = copy_values(self.query_params)
        cloned.path_params = dict(self.path_params)
        cloned.form_data = copy_values(self.form_data)
        cloned.cookies = list(self.cookies)
        cloned.body = self.body
        cloned.user_agent = self.user_agent
        cloned.basic_auth = self.basic_auth
        cloned.bearer_token = self.bearer_token
        cloned.timeout = self.timeout
        cloned.success_result = self.success_result
        cloned.error_result = self.error_result
        cloned.output_path = self.output_path
        cloned.upload_callback = self.upload_callback
        cloned.tracer = self.tracer
        cloned.span_name = self.span_name
        return cloned

    def __str__(self) -> str:
        return f"{self._method} {self.url}"

    def __repr__(self) -> str:
        return f"<Request [{self._method} {self._url}]>"
