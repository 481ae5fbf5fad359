"""
OpenTelemetry span around one ``Request.execute()`` call.

Attribute names follow the OpenTelemetry HTTP client semantic conventions.
"""

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, MutableMapping, Optional
from urllib.parse import urlsplit

from opentelemetry import propagate
from opentelemetry.trace import SpanKind, Status, StatusCode, Span, Tracer

from ...utils.sanitizer import mask_url

if TYPE_CHECKING:
    from ...core.response import Response

logger = logging.getLogger(__name__)


class RequestSpan:
    """
    Thin recorder over the active span of a request.

    Attempts, the last response and errors are written as span attributes.
    """

    def __init__(self, span: Span):
        self.span = span

    def inject_headers(self, headers: MutableMapping[str, str]) -> None:
        """Inject W3C trace context (``traceparent``) into outgoing headers."""
        propagate.inject(headers)

    def record_attempt(self, attempt: int) -> None:
        if attempt > 0:
            self.span.set_attribute("http.request.resend_count", attempt)

    def record_response(self, response: 'Response') -> None:
        if response.status_code:
            self.span.set_attribute("http.response.status_code", response.status_code)
        if response.status_code >= 500:
            self.span.set_status(Status(StatusCode.ERROR, response.status))

    def record_error(self, error: BaseException) -> None:
        self.span.record_exception(error)
        self.span.set_attribute("error.type", type(error).__name__)
        self.span.set_status(Status(StatusCode.ERROR, str(error)))


@contextmanager
def request_span(
    tracer: Tracer,
    span_name: str,
    method: str,
    url: str,
) -> Iterator[RequestSpan]:
    """
    Run the enclosed block inside a CLIENT span.

    Exceptions escaping the block are recorded on the span and re-raised.

    Example:
        >>> tracer = trace.get_tracer("billing")
        >>> with request_span(tracer, "GET /users", "GET", url) as span:
        ...     span.record_response(response)
    """
    with tracer.start_as_current_span(
        span_name,
        kind=SpanKind.CLIENT,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span.set_attribute("http.request.method", method)
        span.set_attribute("url.full", mask_url(url))
        host: Optional[str] = urlsplit(url).hostname
        if host:
            span.set_attribute("server.address", host)

        recorder = RequestSpan(span)
        try:
            yield recorder
        except Exception as e:
            recorder.record_error(e)
            raise
