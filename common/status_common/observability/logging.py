"""
JSON log lines for the status API and the checker.

Every line carries ``timestamp``, ``level``, ``logger``, ``message`` and,
once ``setup_logging`` has been told which process it runs in, ``service``.
While a span is active (a request to the API, a probe in the checker) the
OTel logging instrumentation stamps the record and the formatter copies
``trace_id`` / ``span_id`` into the line.

The root level comes from the ``level`` argument, else ``$LOG_LEVEL``,
else ``INFO``.
"""

import logging
import os

from opentelemetry.instrumentation.logging import LoggingInstrumentor
from pythonjsonlogger.json import JsonFormatter

LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Chatty third-party loggers kept at WARNING regardless of the root level
QUIET_LOGGERS = ("urllib3", "httpx")

_setup_done = False


class JsonTraceFormatter(JsonFormatter):
    def __init__(self, *args, service: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()
        if self.service:
            log_record["service"] = self.service

        trace_id = getattr(record, "otelTraceID", None)
        # "0" is what the instrumentation writes outside any span
        if trace_id and trace_id != "0":
            log_record["trace_id"] = trace_id
            log_record["span_id"] = getattr(record, "otelSpanID", "")


def _resolve_level(level) -> int:
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(level=None, service: str | None = None) -> None:
    """Attach one JSON handler to the root logger. Later calls do nothing."""
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    LoggingInstrumentor().instrument(set_logging_format=False)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonTraceFormatter(LOG_FORMAT, service=service))

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
