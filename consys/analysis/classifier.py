from __future__ import annotations

from consys.core.models import LoadLevel

HIGH_LOAD_PERCENT: float = 80.0
MID_LOAD_PERCENT: float = 50.0


def classify(cpu_pct: float | None, mem_pct: float | None) -> LoadLevel:
    # A missing reading carries no load signal, so it counts as zero.
    cpu = float(cpu_pct or 0.0)
    mem = float(mem_pct or 0.0)
    if cpu >= HIGH_LOAD_PERCENT or mem >= HIGH_LOAD_PERCENT:
        return LoadLevel.HIGH
    if cpu >= MID_LOAD_PERCENT or mem >= MID_LOAD_PERCENT:
        return LoadLevel.MID
    return LoadLevel.LOW
