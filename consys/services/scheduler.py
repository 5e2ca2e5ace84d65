from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Callable

from consys.advisory.backends import AdvisoryBackend
from consys.analysis.health import HealthReport, build_health_report
from consys.collectors.snapshot import collect_snapshot
from consys.core.config import AdvisoryConfig, Settings
from consys.core.models import Snapshot
from consys.services.report_state import ReportState
from consys.storage.metrics_log import append_snapshot, read_history, write_last_snapshot

logger = logging.getLogger(__name__)


class SamplingScheduler:
    def __init__(
        self,
        settings: Settings,
        config: AdvisoryConfig,
        *,
        backend: AdvisoryBackend | None = None,
        report_state: ReportState | None = None,
        collect: Callable[[], Snapshot] = collect_snapshot,
    ) -> None:
        self._settings = settings
        self._config = config
        self._backend = backend
        self._report_state = report_state if report_state is not None else ReportState()
        self._collect = collect
        self._task: asyncio.Task[None] | None = None

    @property
    def report_state(self) -> ReportState:
        return self._report_state

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="sampling-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def _persist(self, snapshot: Snapshot) -> bool:
        try:
            append_snapshot(self._settings.log_path, snapshot)
            write_last_snapshot(self._settings.last_snapshot_path, snapshot)
            return True
        except OSError:
            logger.exception("Failed to persist snapshot to %s", self._settings.log_path)
            return False

    async def run_cycle(self) -> HealthReport | None:
        try:
            snapshot = await asyncio.to_thread(self._collect)
        except Exception:
            logger.exception("Sampling failed")
            return None

        persisted = await asyncio.to_thread(self._persist, snapshot)
        try:
            history = await asyncio.to_thread(
                read_history, self._settings.log_path, self._settings.history_size
            )
        except OSError:
            logger.exception("Failed to read history from %s", self._settings.log_path)
            history = [snapshot]

        report = await asyncio.to_thread(
            build_health_report, snapshot, history, self._config, self._backend
        )

        async with self._report_state.lock:
            self._report_state.latest = report
            self._report_state.cycles += 1

        logger.info(
            "snapshot ts=%s persisted=%s level=%s cpu=%.1f mem=%.1f health=%s stability=%s "
            "anomalies=%d advice=%s actions=%d",
            snapshot.timestamp,
            persisted,
            snapshot.level.value,
            float(snapshot.cpu.usage_pct or 0.0),
            float(snapshot.mem.used_pct or 0.0),
            report.summary.status,
            report.stability.stability,
            len(report.anomalies),
            report.advisory.category,
            len(report.advisory.actions),
        )
        return report

    async def _run(self) -> None:
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Sampling cycle failed")
            await asyncio.sleep(self._settings.interval_seconds)
