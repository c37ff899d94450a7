"""Tests for monitoring: health checks, request timing, error envelopes, CLI."""

import json
import logging

from flask import g

from journey_map.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter
from journey_map.models.journey import Connection, Journey, MicroJob as MicroJobRow


# ── Health Endpoints ────────────────────────────────────────────────────


class TestHealthEndpoints:
    """Health check endpoint tests."""

    def test_health_basic(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_health_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_health_live(self, client):
        """GET /api/v1/health/live returns detailed checks."""
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"
        assert "latency_ms" in data["checks"]["database"]
        assert data["checks"]["app"]["testing"] is True
        assert data["checks"]["schema"]["status"] == "ok"

    def test_health_live_counts_workspaces(self, client):
        client.post("/api/v1/workspaces")
        client.post("/api/v1/workspaces")
        data = client.get("/api/v1/health/live").get_json()
        assert data["checks"]["workspaces"]["open"] == 2

    def test_index(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.get_json()["api"] == "/api/v1"


# ── Request Timing ──────────────────────────────────────────────────────


class TestRequestTiming:

    def test_duration_header_present(self, client):
        res = client.get("/api/v1/health")
        assert "X-Request-Duration-Ms" in res.headers
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_generated(self, client):
        res = client.get("/api/v1/journeys")
        assert len(res.headers["X-Request-ID"]) == 12

    def test_request_id_passthrough(self, client):
        res = client.get("/api/v1/journeys", headers={"X-Request-ID": "trace-abc"})
        assert res.headers["X-Request-ID"] == "trace-abc"


# ── Error envelopes ─────────────────────────────────────────────────────


class TestErrorHandlers:

    def test_unknown_route(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/nothing-here"

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/health/ready")
        assert res.status_code == 405

    def test_non_json_body_rejected_outside_import(self, client, workspace_id):
        res = client.put(
            f"/api/v1/workspaces/{workspace_id}/filters",
            data="selectedTeams=Finance",
            content_type="text/plain",
        )
        assert res.status_code == 415

    def test_unknown_workspace(self, client):
        res = client.get("/api/v1/workspaces/missing")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ── CLI ─────────────────────────────────────────────────────────────────


class TestCli:

    def test_seed_sample_journey(self, app):
        result = app.test_cli_runner().invoke(args=["seed-sample-journey"])
        assert result.exit_code == 0, result.output
        journey = Journey.query.one()
        assert journey.id in result.output
        assert MicroJobRow.query.count() == 3
        assert Connection.query.count() == 2

    def test_import_csv(self, app, tmp_path, sample_csv):
        path = tmp_path / "renewals.csv"
        path.write_text(sample_csv, encoding="utf-8")
        result = app.test_cli_runner().invoke(args=["import-csv", str(path), "--no-connect"])
        assert result.exit_code == 0, result.output
        journey = Journey.query.one()
        assert journey.name == "renewals"
        assert MicroJobRow.query.count() == 3
        assert Connection.query.count() == 0

    def test_import_csv_named_with_edges(self, app, tmp_path, sample_csv):
        path = tmp_path / "renewals.csv"
        path.write_text(sample_csv, encoding="utf-8")
        result = app.test_cli_runner().invoke(
            args=["import-csv", str(path), "--name", "Q3 Renewals"],
        )
        assert result.exit_code == 0, result.output
        assert Journey.query.one().name == "Q3 Renewals"
        assert Connection.query.count() == 2

    def test_import_csv_rejects_bad_file(self, app, tmp_path):
        path = tmp_path / "broken.csv"
        path.write_text("Sequence,Micro Job\n1,A\n", encoding="utf-8")
        result = app.test_cli_runner().invoke(args=["import-csv", str(path)])
        assert result.exit_code != 0
        assert "Missing required columns" in result.output
        assert Journey.query.count() == 0


# ── Logging ─────────────────────────────────────────────────────────────


class TestLogging:

    def test_records_tagged_with_request_context(self, app):
        with app.test_request_context("/api/v1/workspaces/ws-123"):
            g.request_id = "req-1"
            record = logging.LogRecord("journey_map.test", logging.INFO, __file__, 1, "hello", None, None)
            assert RequestContextFilter().filter(record)
        assert record.request_id == "req-1"
        assert record.workspace_id == "ws-123"

        entry = json.loads(JSONFormatter().format(record))
        assert entry["msg"] == "hello"
        assert entry["workspace_id"] == "ws-123"

    def test_outside_request_untouched(self):
        record = logging.LogRecord("journey_map.test", logging.INFO, __file__, 1, "hello", None, None)
        assert RequestContextFilter().filter(record)
        assert not hasattr(record, "workspace_id")
        assert "ws=" not in ReadableFormatter().format(record)
