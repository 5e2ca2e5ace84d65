from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthData(BaseModel):
    status: str


class CpuData(BaseModel):
    usage_pct: float | None = None
    per_core: list[dict[str, Any]] | None = None


class MemData(BaseModel):
    total: int | None = None
    used: int | None = None
    used_pct: float | None = None


class DiskData(BaseModel):
    name: str
    mount: str
    file_system: str | None = None
    total: int | None = None
    used: int | None = None
    used_pct: float | None = None


class GpuData(BaseModel):
    vendor: str
    usage_pct: float | None = None
    mem_used_mib: float | None = None
    mem_total_mib: float | None = None
    mem_used_pct: float | None = None


class SnapshotData(BaseModel):
    timestamp: str
    level: str
    cpu: CpuData
    mem: MemData
    disks: list[DiskData] = Field(default_factory=list)
    gpu: list[GpuData] = Field(default_factory=list)


class ActionData(BaseModel):
    type: str
    category: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    priority: str


class AdvisoryData(BaseModel):
    confidence: float
    category: str
    actions: list[ActionData] = Field(default_factory=list)
    reasoning: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SummaryData(BaseModel):
    timestamp: str
    level: str
    status: str
    overall_score: float | None = None
    components: dict[str, float | None] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)


class StabilityData(BaseModel):
    stability: str
    trend: str
    volatility: str
    cpu_volatility: float | None = None
    memory_trend: float | None = None
    assessment_period: int


class AnomalyData(BaseModel):
    type: str
    severity: str
    current_value: float
    baseline_value: float
    deviation: float
    description: str


class ReportData(BaseModel):
    summary: SummaryData
    stability: StabilityData
    anomalies: list[AnomalyData] = Field(default_factory=list)
    advisory: AdvisoryData


class HealthResponse(BaseModel):
    ok: bool
    data: HealthData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class SnapshotResponse(BaseModel):
    ok: bool
    data: SnapshotData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class HistoryResponse(BaseModel):
    ok: bool
    data: list[SnapshotData] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    ok: bool
    data: ReportData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class AdviceResponse(BaseModel):
    ok: bool
    data: AdvisoryData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
