import unittest
from unittest.mock import MagicMock, patch

import requests

from checker import telemetry
from checker.prober import ProbeResult, probe_backend, probe_frontend, run_checks
from status_common.observability.testing import setup_test_tracing, get_spans_by_name


def _response(status_code=200, json_body=None):
    response = MagicMock()
    response.status_code = status_code
    if isinstance(json_body, Exception):
        response.json.side_effect = json_body
    else:
        response.json.return_value = json_body
    return response


class TestProbeFrontend(unittest.TestCase):
    def test_2xx_is_operational_with_response_time(self):
        with patch("checker.prober.requests.head", return_value=_response(204)) as mock_head:
            result = probe_frontend("https://example.test", timeout=3)

        self.assertEqual(result["frontend"].status, "operational")
        self.assertIsInstance(result["frontend"].response_time, int)
        self.assertGreaterEqual(result["frontend"].response_time, 0)
        mock_head.assert_called_once_with("https://example.test", timeout=3, allow_redirects=True)

    def test_non_2xx_is_down(self):
        with patch("checker.prober.requests.head", return_value=_response(503)):
            result = probe_frontend("https://example.test")
        self.assertEqual(result["frontend"], ProbeResult("down", None))

    def test_timeout_is_down(self):
        with patch("checker.prober.requests.head", side_effect=requests.Timeout("slow")):
            result = probe_frontend("https://example.test")
        self.assertEqual(result["frontend"], ProbeResult("down", None))


class TestProbeBackend(unittest.TestCase):
    def _probe(self, **kwargs):
        with patch("checker.prober.requests.get", **kwargs):
            return probe_backend("https://api.example.test/health")

    def test_healthy_backend_and_database(self):
        results = self._probe(return_value=_response(200, {"status": "OK", "database": "Connected"}))
        self.assertEqual(results["backend"].status, "operational")
        self.assertEqual(results["database"].status, "operational")
        self.assertEqual(results["backend"].response_time, results["database"].response_time)

    def test_unexpected_backend_status_is_degraded(self):
        results = self._probe(return_value=_response(200, {"status": "starting", "database": "Connected"}))
        self.assertEqual(results["backend"].status, "degraded")
        self.assertEqual(results["database"].status, "operational")

    def test_disconnected_database_is_down(self):
        results = self._probe(return_value=_response(200, {"status": "OK", "database": "Disconnected"}))
        self.assertEqual(results["backend"].status, "operational")
        self.assertEqual(results["database"].status, "down")
        self.assertIsNotNone(results["database"].response_time)

    def test_http_error_marks_both_down(self):
        results = self._probe(return_value=_response(500, {"status": "OK"}))
        self.assertEqual(results, {"backend": ProbeResult("down"), "database": ProbeResult("down")})

    def test_invalid_json_marks_both_down(self):
        results = self._probe(return_value=_response(200, ValueError("not json")))
        self.assertEqual(results["backend"].status, "down")
        self.assertEqual(results["database"].status, "down")

    def test_non_object_json_marks_both_down(self):
        results = self._probe(return_value=_response(200, ["OK"]))
        self.assertEqual(results["backend"].status, "down")

    def test_connection_error_marks_both_down(self):
        results = self._probe(side_effect=requests.ConnectionError("refused"))
        self.assertEqual(results["backend"], ProbeResult("down"))
        self.assertEqual(results["database"], ProbeResult("down"))


class TestRunChecks(unittest.TestCase):
    def test_both_probes_configured(self):
        with patch("checker.prober.requests.head", return_value=_response(200)), \
             patch("checker.prober.requests.get", return_value=_response(200, {"status": "OK", "database": "Connected"})):
            checks = run_checks("https://example.test", "https://api.example.test/health", 5)

        self.assertEqual(set(checks), {"frontend", "backend", "database"})
        self.assertEqual(checks["database"]["status"], "operational")
        self.assertIn("responseTime", checks["frontend"])

    def test_unconfigured_probes_are_skipped(self):
        with patch("checker.prober.requests.head") as mock_head, \
             patch("checker.prober.requests.get", side_effect=requests.Timeout("slow")):
            checks = run_checks(None, "https://api.example.test/health")

        mock_head.assert_not_called()
        self.assertEqual(checks, {
            "backend": {"status": "down", "responseTime": None},
            "database": {"status": "down", "responseTime": None},
        })

    def test_nothing_configured(self):
        self.assertEqual(run_checks(None, ""), {})


class TestProbeTelemetry(unittest.TestCase):
    def setUp(self):
        self.exporter = setup_test_tracing("status-checker")

    def test_probe_spans(self):
        with patch("checker.prober.requests.head", return_value=_response(502)):
            probe_frontend("https://example.test")

        spans = get_spans_by_name(self.exporter, "probe frontend")
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].attributes["http.method"], "HEAD")
        self.assertEqual(spans[0].attributes["http.status_code"], 502)
        self.assertFalse(spans[0].status.is_ok)

    def test_probe_counters(self):
        down = telemetry.PROBES_TOTAL.labels(service="database", status="down")
        before = down._value.get()
        with patch("checker.prober.requests.get", side_effect=requests.ConnectionError("refused")):
            probe_backend("https://api.example.test/health")
        self.assertEqual(down._value.get() - before, 1)


if __name__ == "__main__":
    unittest.main()
