import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

import requests
from fastapi.testclient import TestClient
from opentelemetry import trace

import app.database as db_module
from app.database import init_db
from app.main import app
from checker.prober import run_checks
from checker.reporter import build_batch, send_batch
from status_common.observability.testing import setup_test_tracing, get_spans_by_name

TIMESTAMP = 1752321600000  # 2025-07-12T12:00:00Z


def _http(status_code, json_body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body
    return response


class TestCheckerToApi(unittest.TestCase):
    """Checker probes feed a batch that the API folds into stored history."""

    def setUp(self):
        self.exporter = setup_test_tracing("integration-test")
        self._tmp = TemporaryDirectory()
        self._orig_db_path = db_module.DB_PATH
        db_module.DB_PATH = Path(self._tmp.name) / "status.db"
        init_db()

        self._env = patch.dict("os.environ", {"CRON_SECRET": "abc"})
        self._env.start()
        self.client = TestClient(app)

    def tearDown(self):
        self._env.stop()
        db_module.DB_PATH = self._orig_db_path
        self._tmp.cleanup()

    def _post_through_client(self, url, json=None, headers=None, timeout=None):
        response = self.client.post("/api/status", json=json, headers=headers)
        wrapped = MagicMock()
        wrapped.status_code = response.status_code
        wrapped.json.return_value = response.json()
        if response.status_code >= 400:
            wrapped.raise_for_status.side_effect = requests.HTTPError(f"{response.status_code}")
        return wrapped

    def _probe_and_report(self, health_body, token="abc", timestamp=TIMESTAMP):
        with patch("checker.prober.requests.head", return_value=_http(200)), \
             patch("checker.prober.requests.get", return_value=_http(200, health_body)):
            checks = run_checks("https://example.test", "https://api.example.test/health")

        batch = build_batch(checks, timestamp)
        with patch("checker.reporter.requests.post", side_effect=self._post_through_client):
            return send_batch(batch, "http://status.test/api/status", token=token)

    def test_full_cycle_reaches_history(self):
        ack = self._probe_and_report({"status": "OK", "database": "Connected"})
        self.assertEqual(ack, {"success": True, "timestamp": TIMESTAMP})

        data = self.client.get("/api/status").json()
        self.assertEqual(data["latest"]["timestamp"], TIMESTAMP)
        for service in ("frontend", "backend", "database"):
            self.assertEqual(data["latest"][service]["status"], "operational")
            self.assertEqual(len(data["history"][service]), 1)
            self.assertEqual(data["history"][service][0]["date"], "2025-07-12")

    def test_degraded_cycle_escalates_day(self):
        self._probe_and_report({"status": "OK", "database": "Connected"})
        self._probe_and_report({"status": "OK", "database": "Disconnected"}, timestamp=TIMESTAMP + 3_600_000)
        self._probe_and_report({"status": "OK", "database": "Connected"}, timestamp=TIMESTAMP + 7_200_000)

        history = self.client.get("/api/status").json()["history"]
        self.assertEqual(history["database"][0]["status"], "down")
        self.assertEqual(history["database"][0]["checks"], 3)
        self.assertEqual(history["backend"][0]["status"], "operational")

        summary = self.client.get("/api/status/summary").json()
        self.assertEqual(summary["overall"], "operational")
        self.assertEqual(summary["services"]["database"]["uptimePercent"], 0.0)

    def test_wrong_token_is_rejected(self):
        with self.assertRaises(requests.HTTPError):
            self._probe_and_report({"status": "OK", "database": "Connected"}, token="wrong")

        data = self.client.get("/api/status").json()
        self.assertEqual(data["latest"], {})

    def test_trace_continues_from_checker_to_api(self):
        self._probe_and_report({"status": "OK", "database": "Connected"})

        report = get_spans_by_name(self.exporter, "report check batch")[0]
        recorded = get_spans_by_name(self.exporter, "record service history")
        self.assertEqual(len(recorded), 3)
        for span in recorded:
            self.assertEqual(
                trace.format_trace_id(span.context.trace_id),
                trace.format_trace_id(report.context.trace_id),
            )


if __name__ == "__main__":
    unittest.main()
