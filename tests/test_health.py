from __future__ import annotations

import pytest

from consys.advisory.backends import BackendResult, BackendTimeout
from consys.analysis.health import build_health_report, summarize
from tests.helpers import ScriptedBackend, disk, make_snapshot, valid_response


class TestSummarize:
    """Component scores, status and textual recommendations"""

    def test_scores_and_status(self):
        summary = summarize(make_snapshot(10, 20, disks=[disk("/", 30), disk("/home", 50)]))

        assert summary.components == {"cpu": 90.0, "memory": 80.0, "disk": 60.0}
        assert summary.overall_score == pytest.approx(76.7)
        assert summary.status == "good"
        assert summary.recommendations == ()

    def test_null_scores_are_excluded_not_zero(self):
        summary = summarize(make_snapshot(None, 10))

        assert summary.components["cpu"] is None
        assert summary.components["disk"] is None
        assert summary.overall_score == 90.0
        assert summary.status == "excellent"

    def test_unknown_when_nothing_measured(self):
        summary = summarize(make_snapshot(None, None, disks=[disk("/", None)]))

        assert summary.overall_score is None
        assert summary.status == "unknown"

    @pytest.mark.parametrize(
        "cpu, mem, status",
        [(20, 20, "excellent"), (40, 40, "good"), (60, 60, "fair"), (61, 61, "poor")],
    )
    def test_status_thresholds(self, cpu, mem, status):
        assert summarize(make_snapshot(cpu, mem)).status == status

    def test_high_load_recommendation(self):
        summary = summarize(make_snapshot(85, 20, level="high"))

        assert any("load is high" in r for r in summary.recommendations)

    def test_memory_pressure_recommendation(self):
        summary = summarize(make_snapshot(10, 86, level="high"))

        assert any("Memory usage is at 86.0%" in r for r in summary.recommendations)

    def test_memory_at_85_is_not_flagged(self):
        summary = summarize(make_snapshot(10, 85, level="high"))

        assert not any("Memory" in r for r in summary.recommendations)

    def test_one_recommendation_per_full_disk(self):
        summary = summarize(
            make_snapshot(10, 10, disks=[disk("/", 95), disk("/data", 91), disk("/boot", 90)])
        )

        disk_recs = [r for r in summary.recommendations if r.startswith("Disk")]
        assert len(disk_recs) == 2
        assert disk_recs[0].startswith("Disk / ")
        assert disk_recs[1].startswith("Disk /data ")

    def test_poor_status_recommendation(self):
        summary = summarize(make_snapshot(95, 95, level="high", disks=[disk("/", 99)]))

        assert summary.status == "poor"
        assert summary.recommendations[-1].startswith("Overall health is poor")
        assert len(summary.recommendations) == 4


class TestBuildHealthReport:
    """The combined per-cycle report"""

    def test_report_with_failing_backend(self, advisory_config):
        history = [make_snapshot(20, 30), make_snapshot(25, 32), make_snapshot(90, 40, level="high")]
        backend = ScriptedBackend(
            BackendResult(error=BackendTimeout("slow")), BackendResult(error=BackendTimeout("slow"))
        )

        report = build_health_report(history[-1], history, advisory_config, backend)

        assert report.advisory.category == "health_assessment_fallback"
        assert report.advisory.confidence == 0.6
        assert [a.type for a in report.anomalies] == ["cpu_spike"]
        assert report.stability.assessment_period == 3
        assert report.summary.level.value == "high"

    def test_backend_receives_analysis_context(self, advisory_config):
        history = [make_snapshot(20, 30), make_snapshot(20, 30), make_snapshot(20, 30)]
        backend = ScriptedBackend(BackendResult(response=valid_response()))

        report = build_health_report(history[-1], history, advisory_config, backend)

        context = backend.calls[0][0]["context"]
        assert context["stability"]["stability"] == "stable"
        assert context["health_status"] == "good"
        assert context["anomalies"] == []
        assert report.advisory.category == "tuning"

    def test_to_dict_is_plain(self, advisory_config):
        snap = make_snapshot(10, 10)

        data = build_health_report(snap, [snap], advisory_config).to_dict()

        assert set(data) == {"summary", "stability", "anomalies", "advisory"}
        assert data["stability"]["stability"] == "insufficient_data"
        assert data["anomalies"] == []
