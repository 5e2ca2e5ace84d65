from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from consys.advisory.backends import BackendResult
from consys.main import create_app
from consys.storage.metrics_log import append_snapshot, write_last_snapshot
from tests.helpers import ScriptedBackend, make_snapshot, valid_response


@pytest.fixture
def seeded(settings):
    for cpu in (20.0, 22.0, 90.0):
        snap = make_snapshot(cpu, 30.0, level="high" if cpu >= 80 else "low")
        append_snapshot(settings.log_path, snap)
        write_last_snapshot(settings.last_snapshot_path, snap)
    return settings


def _client(settings, advisory_config, backend=None) -> TestClient:
    app = create_app(settings, advisory_config, backend=backend, start_scheduler=False)
    return TestClient(app)


class TestEmptyStore:
    def test_health(self, settings, advisory_config):
        with _client(settings, advisory_config) as client:
            resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "data": {"status": "ok"}, "meta": {}}

    @pytest.mark.parametrize(
        "method, path", [("get", "/api/summary"), ("get", "/api/report"), ("post", "/api/advice")]
    )
    def test_no_snapshots_yet(self, settings, advisory_config, method, path):
        with _client(settings, advisory_config) as client:
            body = getattr(client, method)(path).json()

        assert body["ok"] is False
        assert body["meta"]["message"] == "no snapshots yet"

    def test_history_empty(self, settings, advisory_config):
        with _client(settings, advisory_config) as client:
            body = client.get("/api/history").json()

        assert body["ok"] is True
        assert body["data"] == []
        assert body["meta"]["limit"] == settings.history_size


class TestSeededStore:
    def test_summary_returns_last_snapshot(self, seeded, advisory_config):
        with _client(seeded, advisory_config) as client:
            body = client.get("/api/summary").json()

        assert body["ok"] is True
        assert body["data"]["cpu"]["usage_pct"] == 90.0
        assert body["data"]["level"] == "high"

    def test_history_limit(self, seeded, advisory_config):
        with _client(seeded, advisory_config) as client:
            body = client.get("/api/history", params={"limit": 2}).json()

        assert [s["cpu"]["usage_pct"] for s in body["data"]] == [22.0, 90.0]
        assert body["meta"]["count"] == 2

    def test_history_limit_validation(self, seeded, advisory_config):
        with _client(seeded, advisory_config) as client:
            assert client.get("/api/history", params={"limit": 0}).status_code == 422

    def test_report_on_demand_without_backend(self, seeded, advisory_config):
        with _client(seeded, advisory_config) as client:
            body = client.get("/api/report").json()

        assert body["ok"] is True
        assert body["meta"]["source"] == "on_demand"
        data = body["data"]
        assert data["advisory"]["category"] == "health_assessment_fallback"
        assert data["advisory"]["confidence"] == 0.6
        assert [a["type"] for a in data["anomalies"]] == ["cpu_spike"]
        assert data["stability"]["assessment_period"] == 3

    def test_advice_uses_backend(self, seeded, advisory_config):
        backend = ScriptedBackend(BackendResult(response=valid_response()))

        with _client(seeded, advisory_config, backend) as client:
            body = client.post("/api/advice").json()

        assert body["ok"] is True
        assert body["data"]["category"] == "tuning"
        assert body["meta"]["history_points"] == 3
        assert backend.calls[0][0]["context"]["source"] == "api"

    def test_summary_with_malformed_last_snapshot(self, seeded, advisory_config):
        seeded.last_snapshot_path.write_text(
            '{"timestamp":"t","level":"low","cpu":{},"mem":{},"disks":[5]}', encoding="utf-8"
        )

        with _client(seeded, advisory_config) as client:
            resp = client.get("/api/summary")

        assert resp.status_code == 200
        assert resp.json()["ok"] is False
