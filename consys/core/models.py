"""Domain records shared by the collectors, the analyzers and the advisory path.

Every record is a frozen dataclass; sequences are stored as tuples so a
Snapshot or a History can be handed to several evaluation cycles without any
of them being able to change it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence


class SnapshotFormatError(ValueError):
    pass


class LoadLevel(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ActionType(str, Enum):
    ADJUST = "adjust"
    NOTIFY = "notify"
    SCHEDULE = "schedule"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _number(value: Any, name: str, kind: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotFormatError(f"{name} must be {kind} or null, got {value!r}")
    if not math.isfinite(value):
        raise SnapshotFormatError(f"{name} must be finite, got {value!r}")
    return value


def _opt_float(value: Any, name: str, *, pct: bool = False) -> float | None:
    if value is None:
        return None
    value = float(_number(value, name, "a number"))
    if pct and not 0.0 <= value <= 100.0:
        raise SnapshotFormatError(f"{name} must be within [0, 100], got {value}")
    return value


def _opt_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    return int(_number(value, name, "an integer"))


def _opt_str(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise SnapshotFormatError(f"{name} must be a string or null, got {value!r}")
    return value


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    if key not in data or data[key] is None:
        raise SnapshotFormatError(f"snapshot is missing required field {key!r}")
    value = data[key]
    if not isinstance(value, Mapping):
        raise SnapshotFormatError(f"snapshot field {key!r} must be an object")
    return value


def _entries(value: Any, name: str) -> tuple[Mapping[str, Any], ...]:
    """Validate an optional list of objects such as ``disks`` or ``per_core``."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise SnapshotFormatError(f"{name} must be a list, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, Mapping):
            raise SnapshotFormatError(f"{name} entries must be objects, got {item!r}")
    return tuple(value)


@dataclass(frozen=True, slots=True)
class CpuStats:
    usage_pct: float | None = None
    per_core: tuple[dict[str, Any], ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CpuStats":
        per_core = data.get("per_core")
        return cls(
            usage_pct=_opt_float(data.get("usage_pct"), "cpu.usage_pct", pct=True),
            per_core=(
                None
                if per_core is None
                else tuple(dict(c) for c in _entries(per_core, "cpu.per_core"))
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "usage_pct": self.usage_pct,
            "per_core": None if self.per_core is None else [dict(c) for c in self.per_core],
        }


@dataclass(frozen=True, slots=True)
class MemStats:
    total: int | None = None
    used: int | None = None
    used_pct: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MemStats":
        return cls(
            total=_opt_int(data.get("total"), "mem.total"),
            used=_opt_int(data.get("used"), "mem.used"),
            used_pct=_opt_float(data.get("used_pct"), "mem.used_pct", pct=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "used": self.used, "used_pct": self.used_pct}


@dataclass(frozen=True, slots=True)
class DiskStats:
    name: str
    mount: str
    file_system: str | None = None
    total: int | None = None
    used: int | None = None
    used_pct: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiskStats":
        mount = data.get("mount")
        if not mount:
            raise SnapshotFormatError("disk entry is missing 'mount'")
        return cls(
            name=str(data.get("name") or mount),
            mount=str(mount),
            file_system=_opt_str(data.get("file_system"), "disk.file_system"),
            total=_opt_int(data.get("total"), "disk.total"),
            used=_opt_int(data.get("used"), "disk.used"),
            used_pct=_opt_float(data.get("used_pct"), f"disk[{mount}].used_pct", pct=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "mount": self.mount,
            "file_system": self.file_system,
            "total": self.total,
            "used": self.used,
            "used_pct": self.used_pct,
        }


@dataclass(frozen=True, slots=True)
class GpuStats:
    vendor: str
    usage_pct: float | None = None
    mem_used_mib: float | None = None
    mem_total_mib: float | None = None
    mem_used_pct: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GpuStats":
        return cls(
            vendor=str(data.get("vendor") or "unknown"),
            usage_pct=_opt_float(data.get("usage_pct"), "gpu.usage_pct", pct=True),
            mem_used_mib=_opt_float(data.get("mem_used_mib"), "gpu.mem_used_mib"),
            mem_total_mib=_opt_float(data.get("mem_total_mib"), "gpu.mem_total_mib"),
            mem_used_pct=_opt_float(data.get("mem_used_pct"), "gpu.mem_used_pct", pct=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "usage_pct": self.usage_pct,
            "mem_used_mib": self.mem_used_mib,
            "mem_total_mib": self.mem_total_mib,
            "mem_used_pct": self.mem_used_pct,
        }


@dataclass(frozen=True, slots=True)
class Snapshot:
    timestamp: str
    level: LoadLevel
    cpu: CpuStats = field(default_factory=CpuStats)
    mem: MemStats = field(default_factory=MemStats)
    disks: tuple[DiskStats, ...] = ()
    gpu: tuple[GpuStats, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        if not isinstance(data, Mapping):
            raise SnapshotFormatError("snapshot must be an object")
        timestamp = data.get("timestamp")
        if not timestamp or not isinstance(timestamp, str):
            raise SnapshotFormatError("snapshot is missing required field 'timestamp'")
        try:
            level = LoadLevel(data.get("level"))
        except ValueError as exc:
            raise SnapshotFormatError(f"invalid load level {data.get('level')!r}") from exc

        return cls(
            timestamp=timestamp,
            level=level,
            cpu=CpuStats.from_dict(_section(data, "cpu")),
            mem=MemStats.from_dict(_section(data, "mem")),
            disks=tuple(DiskStats.from_dict(d) for d in _entries(data.get("disks"), "disks")),
            gpu=tuple(GpuStats.from_dict(g) for g in _entries(data.get("gpu"), "gpu")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "cpu": self.cpu.to_dict(),
            "mem": self.mem.to_dict(),
            "disks": [d.to_dict() for d in self.disks],
            "gpu": [g.to_dict() for g in self.gpu],
        }


History = Sequence[Snapshot]


@dataclass(frozen=True, slots=True)
class StabilityAssessment:
    stability: str
    trend: str
    volatility: str
    cpu_volatility: float | None = None
    memory_trend: float | None = None
    assessment_period: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "stability": self.stability,
            "trend": self.trend,
            "volatility": self.volatility,
            "cpu_volatility": self.cpu_volatility,
            "memory_trend": self.memory_trend,
            "assessment_period": self.assessment_period,
        }


@dataclass(frozen=True, slots=True)
class Anomaly:
    type: str
    severity: str
    current_value: float
    baseline_value: float
    deviation: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "current_value": self.current_value,
            "baseline_value": self.baseline_value,
            "deviation": self.deviation,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class Action:
    type: ActionType
    category: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)
    priority: Priority = Priority.MEDIUM

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Action":
        return cls(
            type=ActionType(data["type"]),
            category=str(data["category"]),
            description=str(data["description"]),
            parameters=dict(data.get("parameters") or {}),
            priority=Priority(data["priority"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category,
            "description": self.description,
            "parameters": dict(self.parameters),
            "priority": self.priority.value,
        }


@dataclass(frozen=True, slots=True)
class AdvisoryResponse:
    confidence: float
    category: str
    actions: tuple[Action, ...] = ()
    reasoning: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AdvisoryResponse":
        """Build from a mapping that already passed ``validator.validate``."""
        return cls(
            confidence=float(data["confidence"]),
            category=str(data["category"]),
            actions=tuple(Action.from_dict(a) for a in data["actions"]),
            reasoning=str(data["reasoning"]),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidence": self.confidence,
            "category": self.category,
            "actions": [a.to_dict() for a in self.actions],
            "reasoning": self.reasoning,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True, slots=True)
class AdvisoryRequest:
    metrics: Snapshot | None
    history: tuple[Snapshot, ...] | None
    context: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": None if self.metrics is None else self.metrics.to_dict(),
            "history": None if self.history is None else [s.to_dict() for s in self.history],
            "context": None if self.context is None else dict(self.context),
        }


@dataclass(frozen=True, slots=True)
class HealthSummary:
    timestamp: str
    level: LoadLevel
    status: str
    overall_score: float | None
    components: dict[str, float | None]
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "status": self.status,
            "overall_score": self.overall_score,
            "components": dict(self.components),
            "recommendations": list(self.recommendations),
        }
