"""
Response snapshot of a single attempt.
"""

from datetime import datetime, timedelta
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import requests
from requests.structures import CaseInsensitiveDict

from .codecs import json_unmarshal, xml_unmarshal

if TYPE_CHECKING:
    from .request import Request


class ResultState(IntEnum):
    """Classification of a completed response."""
    SUCCESS = 0
    ERROR = 1
    UNKNOWN = 2


def default_result_checker(response: 'Response') -> ResultState:
    """
    2xx -> SUCCESS, >=400 -> ERROR, everything else (1xx, 3xx) -> UNKNOWN.
    """
    if 200 <= response.status_code < 300:
        return ResultState.SUCCESS
    if response.status_code >= 400:
        return ResultState.ERROR
    return ResultState.UNKNOWN


_HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}


class Response:
    """
    Read-only view of one attempt's outcome.

    Created by the executor for every attempt that reached the transport;
    only the last attempt's Response is handed to the caller. Fields that
    the attempt never reached stay at their zero values (status 0, empty
    body, no headers).

    Attributes:
        request: Originating Request (diagnostics only)
        raw_response: Underlying requests.Response, None if the transport failed
        status_code: HTTP status code (0 if no reply)
        status: Status line, e.g. "200 OK"
        proto: Protocol version, e.g. "HTTP/1.1"
        headers: Response headers (case-insensitive)
        result: Object decoded into the success target
        error_result: Object decoded into the error target
        error: Terminal error of the attempt, None on clean completion
    """

    def __init__(
        self,
        request: Optional['Request'] = None,
        raw_response: Optional[requests.Response] = None,
        duration: timedelta = timedelta(0),
    ):
        self.request = request
        self.raw_response = raw_response
        self.received_at: datetime = datetime.now()
        self.duration = duration

        self.status_code = 0
        self.status = ""
        self.proto = ""
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self._body = b""
        self._size = 0

        self._state = ResultState.UNKNOWN
        self.result: Any = None
        self.error_result: Any = None
        self.error: Optional[Exception] = None

        if raw_response is not None:
            self.status_code = raw_response.status_code
            self.status = f"{raw_response.status_code} {raw_response.reason or ''}".strip()
            self.headers = raw_response.headers
            version = getattr(raw_response.raw, 'version', None)
            self.proto = _HTTP_VERSIONS.get(version, "HTTP/1.1")

    # ==================== Заполняется executor'ом ====================

    def _set_body(self, body: bytes, size: Optional[int] = None) -> None:
        self._body = body
        self._size = len(body) if size is None else size

    def _set_state(self, state: ResultState) -> None:
        self._state = state

    # ==================== Тело ====================

    @property
    def body(self) -> bytes:
        """Raw body bytes."""
        return self._body

    @property
    def text(self) -> str:
        """Body decoded with the response encoding (UTF-8 fallback)."""
        encoding = 'utf-8'
        if self.raw_response is not None and self.raw_response.encoding:
            encoding = self.raw_response.encoding
        return self._body.decode(encoding, errors='replace')

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"

    @property
    def size(self) -> int:
        """Body size in bytes."""
        return self._size

    def json(self, target: Any = None) -> Any:
        """Decode the body as JSON into ``target`` (None for an empty body)."""
        if not self._body:
            return None
        return self._codec('json_unmarshal', json_unmarshal)(self._body, target)

    def xml(self, target: Any = None) -> Any:
        """Decode the body as XML into ``target`` (None for an empty body)."""
        if not self._body:
            return None
        return self._codec('xml_unmarshal', xml_unmarshal)(self._body, target)

    def _codec(self, name: str, default):
        if self.request is not None and self.request.client is not None:
            return getattr(self.request.client, name)
        return default

    # ==================== Классификация ====================

    @property
    def result_state(self) -> ResultState:
        return self._state

    def is_success(self) -> bool:
        """Classified as SUCCESS at classify time."""
        return self._state == ResultState.SUCCESS

    def is_error(self) -> bool:
        """Classified as ERROR at classify time."""
        return self._state == ResultState.ERROR

    # ==================== Метаданные ====================

    @property
    def content_type(self) -> str:
        return self.headers.get('Content-Type', '')

    def is_json(self) -> bool:
        return 'application/json' in self.content_type

    def is_xml(self) -> bool:
        content_type = self.content_type
        return 'application/xml' in content_type or 'text/xml' in content_type

    def is_html(self) -> bool:
        return 'text/html' in self.content_type

    def is_text(self) -> bool:
        return 'text/plain' in self.content_type

    @property
    def cookies(self) -> Dict[str, str]:
        """Cookies set by the server on this response."""
        if self.raw_response is None:
            return {}
        return self.raw_response.cookies.get_dict()

    @property
    def location(self) -> str:
        """Location header (redirect target)."""
        return self.headers.get('Location', '')

    @property
    def history(self) -> List[requests.Response]:
        """Redirect chain that led to this response."""
        if self.raw_response is None:
            return []
        return list(self.raw_response.history)
