from __future__ import annotations

import logging
import statistics

from consys.core.models import Anomaly, History, Snapshot, StabilityAssessment

logger = logging.getLogger(__name__)

MIN_HISTORY_POINTS: int = 3
TREND_WINDOW: int = 3

VOLATILITY_STABLE_BELOW: float = 5.0
VOLATILITY_MODERATE_BELOW: float = 15.0
TREND_THRESHOLD_PERCENT: float = 5.0

CPU_SPIKE_DELTA: float = 30.0
MEMORY_SPIKE_DELTA: float = 25.0
DISK_SPIKE_DELTA: float = 10.0


def _volatility_label(stdev: float | None) -> str:
    if stdev is None:
        return "unknown"
    if stdev < VOLATILITY_STABLE_BELOW:
        return "stable"
    if stdev < VOLATILITY_MODERATE_BELOW:
        return "moderate"
    return "volatile"


def _trend_label(delta: float | None) -> str:
    if delta is None:
        return "unknown"
    if delta > TREND_THRESHOLD_PERCENT:
        return "increasing"
    if delta < -TREND_THRESHOLD_PERCENT:
        return "decreasing"
    return "stable"


def _overall_label(volatility: str, trend: str) -> str:
    if volatility == "stable" and trend in ("stable", "decreasing"):
        return "stable"
    if volatility == "volatile" or trend == "increasing":
        return "unstable"
    return "moderate"


def assess_stability(history: History) -> StabilityAssessment:
    """Classify how steady the host has been across ``history``.

    CPU volatility is the population standard deviation of the CPU usage
    samples. The memory trend compares the mean of the first three memory
    samples with the mean of the last three. Null readings are left out of
    both calculations.
    """
    period = len(history)
    if period < MIN_HISTORY_POINTS:
        return StabilityAssessment(
            stability="insufficient_data",
            trend="unknown",
            volatility="unknown",
            assessment_period=period,
        )

    cpu_values = [s.cpu.usage_pct for s in history if s.cpu.usage_pct is not None]
    mem_values = [s.mem.used_pct for s in history if s.mem.used_pct is not None]

    cpu_stdev = statistics.pstdev(cpu_values) if len(cpu_values) >= 2 else None

    memory_trend: float | None = None
    if mem_values:
        first = statistics.fmean(mem_values[:TREND_WINDOW])
        last = statistics.fmean(mem_values[-TREND_WINDOW:])
        memory_trend = last - first

    volatility = _volatility_label(cpu_stdev)
    trend = _trend_label(memory_trend)
    return StabilityAssessment(
        stability=_overall_label(volatility, trend),
        trend=trend,
        volatility=volatility,
        cpu_volatility=cpu_stdev,
        memory_trend=memory_trend,
        assessment_period=period,
    )


def detect_anomalies(current: Snapshot, baseline: Snapshot) -> list[Anomaly]:
    anomalies: list[Anomaly] = []

    cur_cpu, base_cpu = current.cpu.usage_pct, baseline.cpu.usage_pct
    if cur_cpu is not None and base_cpu is not None:
        delta = cur_cpu - base_cpu
        if delta > CPU_SPIKE_DELTA:
            anomalies.append(
                Anomaly(
                    type="cpu_spike",
                    severity="high",
                    current_value=cur_cpu,
                    baseline_value=base_cpu,
                    deviation=delta,
                    description=f"CPU usage jumped from {base_cpu:.1f}% to {cur_cpu:.1f}%",
                )
            )

    cur_mem, base_mem = current.mem.used_pct, baseline.mem.used_pct
    if cur_mem is not None and base_mem is not None:
        delta = cur_mem - base_mem
        if delta > MEMORY_SPIKE_DELTA:
            anomalies.append(
                Anomaly(
                    type="memory_spike",
                    severity="high",
                    current_value=cur_mem,
                    baseline_value=base_mem,
                    deviation=delta,
                    description=f"Memory usage jumped from {base_mem:.1f}% to {cur_mem:.1f}%",
                )
            )

    baseline_disks = {d.mount: d for d in baseline.disks}
    for disk in current.disks:
        base_disk = baseline_disks.get(disk.mount)
        if base_disk is None or disk.used_pct is None or base_disk.used_pct is None:
            continue
        delta = disk.used_pct - base_disk.used_pct
        if delta > DISK_SPIKE_DELTA:
            anomalies.append(
                Anomaly(
                    type="disk_usage_spike",
                    severity="medium",
                    current_value=disk.used_pct,
                    baseline_value=base_disk.used_pct,
                    deviation=delta,
                    description=(
                        f"Disk usage on {disk.mount} grew from "
                        f"{base_disk.used_pct:.1f}% to {disk.used_pct:.1f}%"
                    ),
                )
            )

    if anomalies:
        logger.debug(
            "anomalies ts=%s baseline_ts=%s types=%s",
            current.timestamp,
            baseline.timestamp,
            ",".join(a.type for a in anomalies),
        )
    return anomalies
