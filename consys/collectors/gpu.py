from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Any

logger = logging.getLogger(__name__)

NVIDIA_SMI_QUERY: tuple[str, ...] = (
    "nvidia-smi",
    "--query-gpu=utilization.gpu,memory.used,memory.total",
    "--format=csv,noheader,nounits",
)


def _to_float(raw: str) -> float | None:
    try:
        return float(raw.strip())
    except ValueError:
        # nvidia-smi prints "[N/A]" or "[Not Supported]" for unreadable fields.
        return None


def parse_nvidia_smi(output: str) -> list[dict[str, Any]]:
    gpus: list[dict[str, Any]] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = [f.strip() for f in line.split(",")]
        if len(fields) != 3:
            logger.debug("Unexpected nvidia-smi line: %r", line)
            continue
        usage, mem_used, mem_total = (_to_float(f) for f in fields)
        mem_pct = None
        if mem_used is not None and mem_total:
            mem_pct = min(100.0, mem_used / mem_total * 100.0)
        gpus.append(
            {
                "vendor": "nvidia",
                "usage_pct": usage,
                "mem_used_mib": mem_used,
                "mem_total_mib": mem_total,
                "mem_used_pct": mem_pct,
            }
        )
    return gpus


def collect_gpus(timeout_seconds: float) -> list[dict[str, Any]]:
    if shutil.which(NVIDIA_SMI_QUERY[0]) is None:
        return []
    try:
        proc = subprocess.run(
            list(NVIDIA_SMI_QUERY),
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout_seconds,
        )
    except (subprocess.TimeoutExpired, OSError) as exc:
        logger.warning("nvidia-smi failed: %s", exc)
        return []
    if proc.returncode != 0:
        logger.warning("nvidia-smi exited with code %d", proc.returncode)
        return []
    return parse_nvidia_smi(proc.stdout)
