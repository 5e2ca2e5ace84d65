from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Any

from consys.advisory.backends import AdvisoryBackend
from consys.advisory.orchestrator import evaluate
from consys.analysis.stability import assess_stability, detect_anomalies
from consys.core.config import AdvisoryConfig
from consys.core.models import (
    AdvisoryRequest,
    AdvisoryResponse,
    Anomaly,
    HealthSummary,
    History,
    LoadLevel,
    Snapshot,
    StabilityAssessment,
)

HEALTH_FALLBACK_CATEGORY: str = "health_assessment_fallback"

MEMORY_PRESSURE_PERCENT: float = 85.0
DISK_FULL_PERCENT: float = 90.0


def _status_for(score: float | None) -> str:
    if score is None:
        return "unknown"
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 1)


def summarize(snapshot: Snapshot) -> HealthSummary:
    cpu_score = None if snapshot.cpu.usage_pct is None else 100.0 - snapshot.cpu.usage_pct
    mem_score = None if snapshot.mem.used_pct is None else 100.0 - snapshot.mem.used_pct

    disk_scores = [100.0 - d.used_pct for d in snapshot.disks if d.used_pct is not None]
    disk_score = statistics.fmean(disk_scores) if disk_scores else None

    known = [s for s in (cpu_score, mem_score, disk_score) if s is not None]
    overall = statistics.fmean(known) if known else None
    status = _status_for(overall)

    recommendations: list[str] = []
    if snapshot.level is LoadLevel.HIGH:
        recommendations.append(
            "System load is high: consider closing unused applications or deferring heavy jobs"
        )
    if snapshot.mem.used_pct is not None and snapshot.mem.used_pct > MEMORY_PRESSURE_PERCENT:
        recommendations.append(
            f"Memory usage is at {snapshot.mem.used_pct:.1f}%: free memory or add swap"
        )
    for disk in snapshot.disks:
        if disk.used_pct is not None and disk.used_pct > DISK_FULL_PERCENT:
            recommendations.append(
                f"Disk {disk.mount} is {disk.used_pct:.1f}% full: clean up or expand storage"
            )
    if status == "poor":
        recommendations.append("Overall health is poor: investigate resource usage")

    return HealthSummary(
        timestamp=snapshot.timestamp,
        level=snapshot.level,
        status=status,
        overall_score=_round(overall),
        components={
            "cpu": _round(cpu_score),
            "memory": _round(mem_score),
            "disk": _round(disk_score),
        },
        recommendations=tuple(recommendations),
    )


@dataclass(frozen=True, slots=True)
class HealthReport:
    summary: HealthSummary
    stability: StabilityAssessment
    anomalies: tuple[Anomaly, ...]
    advisory: AdvisoryResponse

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "stability": self.stability.to_dict(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "advisory": self.advisory.to_dict(),
        }


def build_health_report(
    snapshot: Snapshot,
    history: History,
    config: AdvisoryConfig,
    backend: AdvisoryBackend | None = None,
) -> HealthReport:
    """Compose the summary, stability, anomaly and advisory views of one cycle.

    The oldest snapshot of the window is the anomaly baseline. The advisory
    request carries the load label, the stability assessment and the anomalies
    as context for the backend.
    """
    window = tuple(history)
    summary = summarize(snapshot)
    stability = assess_stability(window)
    anomalies: tuple[Anomaly, ...] = ()
    if window and window[0] is not snapshot:
        anomalies = tuple(detect_anomalies(snapshot, window[0]))

    request = AdvisoryRequest(
        metrics=snapshot,
        history=window,
        context={
            "level": snapshot.level.value,
            "health_status": summary.status,
            "stability": stability.to_dict(),
            "anomalies": [a.to_dict() for a in anomalies],
        },
    )
    advisory = evaluate(request, config, backend, fallback_category=HEALTH_FALLBACK_CATEGORY)
    return HealthReport(
        summary=summary,
        stability=stability,
        anomalies=anomalies,
        advisory=advisory,
    )
