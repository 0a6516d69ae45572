"""
Service-specific metrics for status-checker.

Domain counters and histograms that sit on top of the shared
``status_common.observability`` metric factories.
"""

from status_common.observability import create_counter, create_histogram

# ── Metrics (Prometheus) ──────────────────────────────────────────

PROBES_TOTAL = create_counter(
    "probes_total",
    "Probe outcomes by service and resulting status",
    ["service", "status"],
)

PROBE_DURATION = create_histogram(
    "probe_duration_seconds",
    "Wall-clock time of a probe, including failures and timeouts",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    labelnames=["service"],
)

REPORTS_SENT = create_counter(
    "reports_sent_total",
    "Check batches accepted by the status API",
)

REPORTS_FAILED = create_counter(
    "reports_failed_total",
    "Check batches the status API did not accept",
)
