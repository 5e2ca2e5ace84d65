from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from consys.analysis.classifier import classify
from consys.collectors.cpu import collect_cpu
from consys.collectors.disk import collect_disks
from consys.collectors.gpu import collect_gpus
from consys.collectors.memory import collect_memory
from consys.core.config import GPU_QUERY_TIMEOUT_SECONDS
from consys.core.models import Snapshot

logger = logging.getLogger(__name__)


def _safe_collect(name: str, func: Callable[[], Any]) -> Any:
    try:
        return func()
    except Exception:
        logger.exception("Collector failed: %s", name)
        return None


def collect_snapshot(*, gpu_timeout_seconds: float = GPU_QUERY_TIMEOUT_SECONDS) -> Snapshot:
    """Sample every collector once and label the result with its load level.

    A failing collector leaves its section null or empty; it never aborts the
    whole sample.
    """
    cpu = _safe_collect("cpu", collect_cpu) or {}
    mem = _safe_collect("memory", collect_memory) or {}
    disks = _safe_collect("disk", collect_disks) or []
    gpus = _safe_collect("gpu", lambda: collect_gpus(gpu_timeout_seconds)) or []

    return Snapshot.from_dict(
        {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": classify(cpu.get("usage_pct"), mem.get("used_pct")).value,
            "cpu": {"usage_pct": cpu.get("usage_pct"), "per_core": cpu.get("per_core")},
            "mem": {
                "total": mem.get("total"),
                "used": mem.get("used"),
                "used_pct": mem.get("used_pct"),
            },
            "disks": disks,
            "gpu": gpus,
        }
    )
