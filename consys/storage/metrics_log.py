from __future__ import annotations

import json
import logging
import os
from collections import deque
from pathlib import Path

from consys.core.models import Snapshot, SnapshotFormatError

logger = logging.getLogger(__name__)


def _dumps(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_dict(), ensure_ascii=False, separators=(",", ":"))


def append_snapshot(log_path: Path, snapshot: Snapshot) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(_dumps(snapshot) + "\n")


def write_last_snapshot(path: Path, snapshot: Snapshot) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(_dumps(snapshot), encoding="utf-8")
    os.replace(tmp, path)


def read_last_snapshot(path: Path) -> Snapshot | None:
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    try:
        return Snapshot.from_dict(json.loads(raw))
    except (json.JSONDecodeError, SnapshotFormatError):
        logger.exception("Unreadable last snapshot file %s", path)
        return None


def read_history(log_path: Path, limit: int) -> list[Snapshot]:
    """Return the last ``limit`` readable snapshots of the log, oldest first."""
    if limit <= 0:
        return []
    try:
        # Undecodable bytes become U+FFFD; a line they break is skipped as corrupt.
        fh = log_path.open("r", encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return []

    # Read a few extra lines so corrupt entries do not shrink the window.
    tail: deque[tuple[int, str]] = deque(maxlen=limit * 2)
    with fh:
        for lineno, line in enumerate(fh, start=1):
            if line.strip():
                tail.append((lineno, line))

    history: list[Snapshot] = []
    for lineno, line in tail:
        try:
            history.append(Snapshot.from_dict(json.loads(line)))
        except (json.JSONDecodeError, SnapshotFormatError) as exc:
            logger.warning("Skipping corrupt entry %s:%d: %s", log_path, lineno, exc)
    return history[-limit:]
