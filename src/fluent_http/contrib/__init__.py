"""
Optional integrations with third-party libraries.

Each contrib module needs its extra installed and is only imported on use:
- opentelemetry: request tracing (``Request.set_tracer``)
"""
