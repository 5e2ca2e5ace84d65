"""Snapshot factories, scripted advisory backends and local model handles shared by the tests."""

from __future__ import annotations

import json
import time
from typing import Any

from consys.advisory.backends import BackendResult, BackendTimeout
from consys.core.models import Snapshot


def snapshot_dict(
    cpu: float | None = 10.0,
    mem: float | None = 20.0,
    *,
    level: str = "low",
    disks: list[dict[str, Any]] | None = None,
    timestamp: str = "2026-10-18T12:00:00+00:00",
) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "level": level,
        "cpu": {"usage_pct": cpu, "per_core": None},
        "mem": {"total": 16_000, "used": None, "used_pct": mem},
        "disks": disks or [],
        "gpu": [],
    }


def make_snapshot(cpu=10.0, mem=20.0, **kwargs) -> Snapshot:
    return Snapshot.from_dict(snapshot_dict(cpu, mem, **kwargs))


def disk(mount: str, used_pct: float | None) -> dict[str, Any]:
    return {
        "name": f"/dev/{mount.strip('/') or 'root'}",
        "mount": mount,
        "file_system": "ext4",
        "total": 1000,
        "used": None if used_pct is None else int(used_pct * 10),
        "used_pct": used_pct,
    }


def valid_response(**overrides) -> dict[str, Any]:
    response = {
        "confidence": 0.9,
        "category": "tuning",
        "actions": [
            {
                "type": "adjust",
                "category": "performance",
                "description": "Lower the nice value of the build job",
                "parameters": {"nice": 10},
                "priority": "medium",
            }
        ],
        "reasoning": "CPU saturated by a background build",
        "metadata": {"model": "test"},
    }
    response.update(overrides)
    return response


class ScriptedBackend:
    """Backend returning a fixed sequence of results, one per call."""

    name = "scripted"

    def __init__(self, *results: BackendResult) -> None:
        self.results = list(results)
        self.calls: list[tuple[dict[str, Any], float]] = []

    def invoke(self, payload: dict[str, Any], timeout_seconds: float) -> BackendResult:
        self.calls.append((payload, timeout_seconds))
        if not self.results:
            return BackendResult(error=BackendTimeout("no scripted result left"))
        return self.results.pop(0)




# Local model handles run in a spawned process, so they must be importable.
def model_answer(payload: dict[str, Any]) -> dict[str, Any]:
    return valid_response()


def model_answer_text(payload: dict[str, Any]) -> str:
    return json.dumps(valid_response())


def model_hangs(payload: dict[str, Any]) -> dict[str, Any]:
    time.sleep(60)
    return valid_response()


def model_raises(payload: dict[str, Any]) -> dict[str, Any]:
    raise RuntimeError("weights not loaded")
