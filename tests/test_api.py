import json
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi.testclient import TestClient

from conn_watchdog.checks.results import CheckResult
from conn_watchdog.main import create_app
from conn_watchdog.models import MonitorConfig
from conn_watchdog.persistence import LOG_COLUMNS, append_result, ensure_log

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _result(i: int) -> CheckResult:
    return CheckResult(
        timestamp=T0 + timedelta(seconds=i),
        status="UP",
        latency_ms=10 + i,
        uptime=f"{i}s",
        downtime="0s",
        message="Connection stable",
        changes=1,
    )


class ConnectionDataEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.log_path = Path(self._td.name) / "connection_log.csv"
        self.cfg = MonitorConfig(log_file=str(self.log_path))
        self.client = TestClient(create_app(self.cfg))

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_header_only_returns_empty_array(self) -> None:
        ensure_log(self.log_path)

        resp = self.client.get("/api/connection-data")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "application/json")
        self.assertEqual(resp.json(), [])

    def test_rows_returned_in_append_order(self) -> None:
        ensure_log(self.log_path)
        for i in range(3):
            append_result(self.log_path, _result(i))

        resp = self.client.get("/api/connection-data")

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(len(body), 3)
        self.assertEqual([row["latency"] for row in body], ["10", "11", "12"])
        for row in body:
            self.assertEqual(set(row), set(LOG_COLUMNS))
            self.assertTrue(all(isinstance(v, str) for v in row.values()))

    def test_missing_log_is_500(self) -> None:
        resp = self.client.get("/api/connection-data")

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": "Unable to read log file"})
        self.assertEqual(resp.headers["access-control-allow-origin"], "*")

    def test_cors_headers_on_get(self) -> None:
        ensure_log(self.log_path)

        resp = self.client.get("/api/connection-data")

        self.assertEqual(resp.headers["access-control-allow-origin"], "*")
        self.assertEqual(resp.headers["access-control-allow-methods"], "GET, OPTIONS")
        self.assertEqual(resp.headers["access-control-allow-headers"], "Content-Type")

    def test_options_preflight_is_empty_200(self) -> None:
        resp = self.client.options(
            "/api/connection-data",
            headers={
                "Origin": "http://dashboard.local",
                "Access-Control-Request-Method": "GET",
            },
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"")
        self.assertEqual(resp.headers["access-control-allow-origin"], "*")
        self.assertEqual(resp.headers["access-control-allow-methods"], "GET, OPTIONS")

    def test_reads_during_appends_always_return_valid_json(self) -> None:
        ensure_log(self.log_path)
        done = threading.Event()

        def writer() -> None:
            for i in range(200):
                append_result(self.log_path, _result(i))
            done.set()

        t = threading.Thread(target=writer)
        t.start()
        counts = []
        while not done.is_set():
            resp = self.client.get("/api/connection-data")
            self.assertEqual(resp.status_code, 200)
            counts.append(len(json.loads(resp.text)))
        t.join()

        self.assertEqual(counts, sorted(counts))
        final = self.client.get("/api/connection-data").json()
        self.assertEqual(len(final), 200)


class SystemEndpointTests(unittest.TestCase):
    def test_health(self) -> None:
        client = TestClient(create_app(MonitorConfig()))
        resp = client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_config_reports_effective_settings(self) -> None:
        cfg = MonitorConfig(ping_target="1.1.1.1", check_interval=10, probe="tcp")
        client = TestClient(create_app(cfg))

        resp = client.get("/api/config")

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["ping_target"], "1.1.1.1")
        self.assertEqual(body["check_interval"], 10)
        self.assertEqual(body["probe"], "tcp")


if __name__ == "__main__":
    unittest.main()
