from __future__ import annotations

import logging
from typing import Any

import psutil

logger = logging.getLogger(__name__)

# Pseudo and image-backed file systems that never fill up in a meaningful way.
IGNORED_FILE_SYSTEMS: frozenset[str] = frozenset({"squashfs", "tmpfs", "devtmpfs", "overlay", "iso9660"})


def collect_disks() -> list[dict[str, Any]]:
    disks: list[dict[str, Any]] = []
    seen: set[str] = set()

    for part in psutil.disk_partitions(all=False):
        if part.fstype.lower() in IGNORED_FILE_SYSTEMS or part.mountpoint in seen:
            continue
        seen.add(part.mountpoint)
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (PermissionError, OSError) as exc:
            logger.debug("Skipping %s: %s", part.mountpoint, exc)
            continue
        disks.append(
            {
                "name": part.device or part.mountpoint,
                "mount": part.mountpoint,
                "file_system": part.fstype or None,
                "total": int(usage.total),
                "used": int(usage.used),
                "used_pct": float(usage.percent),
            }
        )

    return disks
