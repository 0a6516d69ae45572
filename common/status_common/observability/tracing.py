import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

logger = logging.getLogger(__name__)


def init_tracing(service_name: str, version: str | None = None, endpoint: str | None = None) -> None:
    """
    Initialize OpenTelemetry tracing with the OTLP HTTP exporter.

    Args:
        service_name: Name of the service (e.g. "status-api", "status-checker")
        version: Optional service version, recorded as ``service.version``.
        endpoint: OTLP HTTP endpoint (e.g. "http://jaeger:4318").
                 If None, uses OTEL_EXPORTER_OTLP_ENDPOINT,
                 defaulting to http://localhost:4318.
    """
    if endpoint is None:
        endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")

    # HTTP exporter needs the full /v1/traces path
    if endpoint.endswith("/v1/traces"):
        traces_endpoint = endpoint
    else:
        traces_endpoint = f"{endpoint.rstrip('/')}/v1/traces"

    attributes = {"service.name": service_name}
    if version:
        attributes["service.version"] = version

    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint)))
    trace.set_tracer_provider(provider)

    logger.info("Tracing initialized for %s (exporting to %s)", service_name, traces_endpoint)


def shutdown_tracing() -> None:
    """Flush and shut down the global tracer provider."""
    try:
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
            logger.info("Tracer shutdown complete")
    except Exception as e:
        logger.warning("Tracer shutdown warning: %s", e)
