from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request

from consys.advisory.orchestrator import evaluate
from consys.analysis.health import build_health_report
from consys.api.schemas import AdviceResponse, HealthResponse, HistoryResponse, ReportResponse
from consys.api.schemas import SnapshotResponse
from consys.core.config import Settings
from consys.core.models import AdvisoryRequest
from consys.services.report_state import ReportState
from consys.storage.metrics_log import read_history, read_last_snapshot

router = APIRouter(prefix="/api")


def _settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health")
def health() -> HealthResponse:
    return HealthResponse(ok=True, data={"status": "ok"}, meta={})


@router.get("/summary")
def summary(request: Request) -> SnapshotResponse:
    latest = read_last_snapshot(_settings(request).last_snapshot_path)
    if latest is None:
        return SnapshotResponse(ok=False, data=None, meta={"message": "no snapshots yet"})

    return SnapshotResponse(ok=True, data=latest.to_dict(), meta={})


@router.get("/history")
def history(
    request: Request,
    limit: int | None = Query(default=None, ge=1, le=1000),
) -> HistoryResponse:
    settings = _settings(request)
    limit = limit or settings.history_size
    rows = read_history(settings.log_path, limit)
    return HistoryResponse(
        ok=True,
        data=[s.to_dict() for s in rows],
        meta={"limit": limit, "count": len(rows)},
    )


@router.get("/report")
async def report(request: Request) -> ReportResponse:
    state: ReportState = request.app.state.report_state
    async with state.lock:
        latest = state.latest
        cycles = state.cycles

    if latest is not None:
        return ReportResponse(
            ok=True, data=latest.to_dict(), meta={"source": "scheduler", "cycles": cycles}
        )

    settings = _settings(request)
    snapshot = await asyncio.to_thread(read_last_snapshot, settings.last_snapshot_path)
    if snapshot is None:
        return ReportResponse(ok=False, data=None, meta={"message": "no snapshots yet"})

    rows = await asyncio.to_thread(read_history, settings.log_path, settings.history_size)
    built = await asyncio.to_thread(
        build_health_report,
        snapshot,
        rows,
        request.app.state.advisory_config,
        request.app.state.backend,
    )
    return ReportResponse(ok=True, data=built.to_dict(), meta={"source": "on_demand"})


@router.post("/advice")
async def advice(request: Request) -> AdviceResponse:
    settings = _settings(request)
    snapshot = await asyncio.to_thread(read_last_snapshot, settings.last_snapshot_path)
    if snapshot is None:
        return AdviceResponse(ok=False, data=None, meta={"message": "no snapshots yet"})

    rows = await asyncio.to_thread(read_history, settings.log_path, settings.history_size)
    advisory_request = AdvisoryRequest(
        metrics=snapshot,
        history=tuple(rows),
        context={"level": snapshot.level.value, "source": "api"},
    )
    response = await asyncio.to_thread(
        evaluate,
        advisory_request,
        request.app.state.advisory_config,
        request.app.state.backend,
    )
    return AdviceResponse(
        ok=True,
        data=response.to_dict(),
        meta={"ts_utc": datetime.now(timezone.utc).isoformat(), "history_points": len(rows)},
    )
