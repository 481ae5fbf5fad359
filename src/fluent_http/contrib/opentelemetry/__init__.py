"""
OpenTelemetry tracing for fluent-http.

Requires opentelemetry-api (and an SDK to export spans).

Installation:
    pip install fluent-http[otel]

Example:
    >>> from opentelemetry import trace
    >>> from opentelemetry.sdk.trace import TracerProvider
    >>> from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
    >>>
    >>> provider = TracerProvider()
    >>> provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    >>> tracer = provider.get_tracer("billing")
    >>>
    >>> client.r().set_tracer(tracer, "list users").get("/users")
"""

try:
    import opentelemetry  # noqa: F401
except ImportError as e:
    raise ImportError(
        "Tracing support requires opentelemetry-api. "
        "Install with: pip install fluent-http[otel]"
    ) from e

from .tracing import RequestSpan, request_span

__all__ = [
    "RequestSpan",
    "request_span",
]
