from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator


def inject_trace_context(headers: dict) -> dict:
    """
    Inject the W3C ``traceparent`` of the current span into an HTTP headers dict.

    Use this before sending a request to another service so the receiving
    server span (FastAPI instrumentation) continues the same trace.
    Headers are left untouched when no span is active.
    """
    TraceContextTextMapPropagator().inject(headers)
    return headers
