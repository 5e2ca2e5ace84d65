from __future__ import annotations

from typing import Any

import psutil


def collect_cpu() -> dict[str, Any]:
    per_core = psutil.cpu_percent(interval=None, percpu=True)
    return {
        "usage_pct": float(psutil.cpu_percent(interval=None)),
        "per_core": [
            {"core": index, "usage_pct": float(value)} for index, value in enumerate(per_core)
        ],
    }
