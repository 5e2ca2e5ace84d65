from __future__ import annotations

import psutil


def collect_memory() -> dict[str, float | int]:
    mem = psutil.virtual_memory()
    return {
        "total": int(mem.total),
        "used": int(mem.used),
        "used_pct": float(mem.percent),
    }
