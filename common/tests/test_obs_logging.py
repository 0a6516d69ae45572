"""Tests for status_common.observability.logging submodule."""

import io
import json
import logging
import os
import unittest
from unittest.mock import patch

from status_common.observability.logging import (
    setup_logging,
    get_logger,
    JsonTraceFormatter,
)


class TestJsonTraceFormatter(unittest.TestCase):
    """Verify the JSON formatter produces the expected fields."""

    def test_builds_on_json_logger_json_module(self):
        from pythonjsonlogger.json import JsonFormatter
        self.assertTrue(issubclass(JsonTraceFormatter, JsonFormatter))

    def test_format_contains_required_fields(self):
        formatter = JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

        record = logging.LogRecord(
            name="test-logger",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="hello world",
            args=(),
            exc_info=None,
        )
        output = formatter.format(record)
        data = json.loads(output)

        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "test-logger")
        self.assertEqual(data["message"], "hello world")
        self.assertIn("timestamp", data)
        self.assertIsInstance(data["timestamp"], float)

    def test_format_adds_trace_ids_when_present(self):
        formatter = JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            name="recorder",
            level=logging.WARNING,
            pathname="recorder.py",
            lineno=1,
            msg="history for %s changed concurrently",
            args=("backend",),
            exc_info=None,
        )
        record.otelTraceID = "0af7651916cd43dd8448eb211c80319c"
        record.otelSpanID = "b7ad6b7169203331"
        data = json.loads(formatter.format(record))
        self.assertEqual(data["message"], "history for backend changed concurrently")
        self.assertEqual(data["trace_id"], "0af7651916cd43dd8448eb211c80319c")
        self.assertEqual(data["span_id"], "b7ad6b7169203331")

    def test_format_adds_service(self):
        formatter = JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s", service="status-api")
        record = logging.LogRecord(
            name="recorder",
            level=logging.INFO,
            pathname="recorder.py",
            lineno=1,
            msg="recorded",
            args=(),
            exc_info=None,
        )
        data = json.loads(formatter.format(record))
        self.assertEqual(data["service"], "status-api")

    def test_format_omits_invalid_trace_id(self):
        formatter = JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            name="x",
            level=logging.INFO,
            pathname="x.py",
            lineno=1,
            msg="no span",
            args=(),
            exc_info=None,
        )
        record.otelTraceID = "0"
        data = json.loads(formatter.format(record))
        self.assertNotIn("trace_id", data)


class TestSetupLogging(unittest.TestCase):
    """Test that setup_logging configures the root logger correctly."""

    def setUp(self):
        # Reset the idempotency guard so each test can call setup_logging
        import status_common.observability.logging as log_mod
        self._original = log_mod._setup_done
        log_mod._setup_done = False

        # Remove any handlers we might add
        self._root = logging.getLogger()
        self._original_handlers = self._root.handlers[:]

    def tearDown(self):
        import status_common.observability.logging as log_mod
        log_mod._setup_done = self._original

        # Restore original handlers
        self._root.handlers = self._original_handlers

    def test_adds_json_handler_to_root(self):
        """setup_logging should attach a StreamHandler with JsonTraceFormatter."""
        setup_logging()

        json_handlers = [
            h for h in self._root.handlers
            if isinstance(h, logging.StreamHandler)
            and isinstance(h.formatter, JsonTraceFormatter)
        ]
        self.assertGreaterEqual(len(json_handlers), 1)

    def test_sets_log_level(self):
        setup_logging(level=logging.DEBUG)
        self.assertEqual(self._root.level, logging.DEBUG)

    def test_level_from_environment(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            setup_logging()
        self.assertEqual(self._root.level, logging.WARNING)

    def test_unknown_level_name_falls_back_to_info(self):
        setup_logging("LOUD")
        self.assertEqual(self._root.level, logging.INFO)

    def test_service_name_on_handler(self):
        setup_logging(service="status-checker")
        formatters = [
            h.formatter for h in self._root.handlers
            if isinstance(h.formatter, JsonTraceFormatter)
        ]
        self.assertEqual(formatters[-1].service, "status-checker")

    def test_idempotent(self):
        """Calling setup_logging twice should not add duplicate handlers."""
        setup_logging()
        count_before = len(self._root.handlers)
        setup_logging()
        self.assertEqual(len(self._root.handlers), count_before)

    def test_json_output_is_parseable(self):
        """A log message produced after setup should be valid JSON."""
        buf = io.StringIO()
        handler = logging.StreamHandler(buf)
        handler.setFormatter(JsonTraceFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
        test_logger = logging.getLogger("json-output-test")
        test_logger.addHandler(handler)
        test_logger.setLevel(logging.INFO)

        test_logger.info("integration check")
        handler.flush()

        line = buf.getvalue().strip()
        data = json.loads(line)
        self.assertEqual(data["message"], "integration check")
        self.assertEqual(data["logger"], "json-output-test")

        test_logger.removeHandler(handler)


class TestGetLogger(unittest.TestCase):
    def test_returns_named_logger(self):
        logger = get_logger("my-component")
        self.assertEqual(logger.name, "my-component")
        self.assertIsInstance(logger, logging.Logger)


if __name__ == "__main__":
    unittest.main()
