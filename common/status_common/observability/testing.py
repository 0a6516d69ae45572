"""
Test utilities for the observability stack.

Helpers to install an in-memory span exporter, query the spans it captured,
and reset the Prometheus collector registry between tests.
"""

from prometheus_client import REGISTRY
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider, ReadableSpan
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.sdk.resources import Resource


def setup_test_tracing(service_name: str = "test-service") -> InMemorySpanExporter:
    """
    Install a TracerProvider backed by an InMemorySpanExporter.

    Returns the exporter so the test can inspect finished spans. Any
    previously installed provider is forcefully replaced so this can be
    called from every test's setup.
    """
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    # Bypass the "already set" guard of the global provider
    trace._TRACER_PROVIDER = None
    trace._TRACER_PROVIDER_SET_ONCE._done = False
    trace.set_tracer_provider(provider)
    return exporter


def get_spans_by_name(exporter: InMemorySpanExporter, name: str) -> list[ReadableSpan]:
    """Filter exported spans by operation name."""
    return [s for s in exporter.get_finished_spans() if s.name == name]


def reset_metrics() -> None:
    """
    Unregister all user-created collectors from the default Prometheus
    registry so the next test gets a clean slate.

    Keeps platform collectors (``gc``, ``process``, ``platform``) intact.
    """
    seen = set()
    for collector in list(REGISTRY._names_to_collectors.values()):
        # Platform / internal collectors don't have _name
        if not hasattr(collector, "_name") or id(collector) in seen:
            continue
        seen.add(id(collector))
        try:
            REGISTRY.unregister(collector)
        except KeyError:
            pass
