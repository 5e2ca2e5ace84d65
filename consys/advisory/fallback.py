from __future__ import annotations

from consys.core.models import Action, ActionType, AdvisoryResponse, Priority, Snapshot

FALLBACK_CONFIDENCE: float = 0.6
FALLBACK_CATEGORY: str = "heuristic_fallback"

HIGH_USAGE_PERCENT: float = 80.0
ELEVATED_USAGE_PERCENT: float = 50.0


def heuristic_actions(metrics: Snapshot) -> tuple[Action, ...]:
    cpu = metrics.cpu.usage_pct or 0.0
    mem = metrics.mem.used_pct or 0.0

    high_cpu = (
        Action(
            type=ActionType.ADJUST,
            category="performance",
            description=f"CPU usage is {cpu:.1f}%: lower the priority of or pause CPU-heavy processes",
            parameters={"metric": "cpu", "usage_pct": cpu, "threshold": HIGH_USAGE_PERCENT},
            priority=Priority.HIGH,
        ),
    ) if cpu > HIGH_USAGE_PERCENT else ()

    high_mem = (
        Action(
            type=ActionType.ADJUST,
            category="resource",
            description=f"Memory usage is {mem:.1f}%: close memory-heavy applications or add swap",
            parameters={"metric": "memory", "usage_pct": mem, "threshold": HIGH_USAGE_PERCENT},
            priority=Priority.HIGH,
        ),
    ) if mem > HIGH_USAGE_PERCENT else ()

    elevated = (
        Action(
            type=ActionType.NOTIFY,
            category="performance",
            description=f"Elevated load (CPU {cpu:.1f}%, memory {mem:.1f}%): keep an eye on usage",
            parameters={"cpu_pct": cpu, "mem_pct": mem, "threshold": ELEVATED_USAGE_PERCENT},
            priority=Priority.MEDIUM,
        ),
    ) if cpu > ELEVATED_USAGE_PERCENT or mem > ELEVATED_USAGE_PERCENT else ()

    return high_cpu + high_mem + elevated


def heuristic_response(
    metrics: Snapshot, *, category: str = FALLBACK_CATEGORY, reason: str | None = None
) -> AdvisoryResponse:
    actions = heuristic_actions(metrics)
    reasoning = (
        f"Heuristic assessment of CPU {metrics.cpu.usage_pct}% and memory "
        f"{metrics.mem.used_pct}% produced {len(actions)} action(s)"
    )
    if reason:
        reasoning = f"{reasoning}; advisory backend unavailable: {reason}"
    return AdvisoryResponse(
        confidence=FALLBACK_CONFIDENCE,
        category=category,
        actions=actions,
        reasoning=reasoning,
        metadata={"source": "heuristic", "level": metrics.level.value},
    )
