from __future__ import annotations

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, patch

from consys.services.scheduler import SamplingScheduler
from consys.storage.metrics_log import read_history, read_last_snapshot
from tests.helpers import make_snapshot


class _Sampler:
    def __init__(self, *cpus):
        self.cpus = list(cpus)

    def __call__(self):
        cpu = self.cpus.pop(0)
        return make_snapshot(cpu, 30.0, level="high" if cpu >= 80 else "low")


class TestSamplingScheduler:
    """One sampling cycle end to end, without a backend"""

    def test_cycles_persist_and_report(self, settings, advisory_config):
        scheduler = SamplingScheduler(settings, advisory_config, collect=_Sampler(20, 21, 95))

        async def run():
            for _ in range(3):
                report = await scheduler.run_cycle()
            return report

        report = asyncio.run(run())

        assert [s.cpu.usage_pct for s in read_history(settings.log_path, 10)] == [20, 21, 95]
        assert read_last_snapshot(settings.last_snapshot_path).cpu.usage_pct == 95
        assert report.advisory.category == "health_assessment_fallback"
        assert [a.type for a in report.anomalies] == ["cpu_spike"]
        assert scheduler.report_state.latest is report
        assert scheduler.report_state.cycles == 3

    def test_history_window_is_bounded(self, settings, advisory_config):
        settings = replace(settings, history_size=2)
        scheduler = SamplingScheduler(settings, advisory_config, collect=_Sampler(10, 10, 10, 10))

        async def run():
            for _ in range(4):
                report = await scheduler.run_cycle()
            return report

        report = asyncio.run(run())

        assert report.stability.assessment_period == 2
        assert report.stability.stability == "insufficient_data"

    def test_collector_failure_skips_the_cycle(self, settings, advisory_config):
        def broken():
            raise RuntimeError("psutil exploded")

        scheduler = SamplingScheduler(settings, advisory_config, collect=broken)

        assert asyncio.run(scheduler.run_cycle()) is None
        assert scheduler.report_state.cycles == 0
        assert not settings.log_path.exists()

    def test_start_and_stop(self, settings, advisory_config):
        scheduler = SamplingScheduler(settings, advisory_config, collect=_Sampler(*[10] * 50))

        async def run():
            scheduler.start()
            await asyncio.sleep(0.2)
            await scheduler.stop()

        asyncio.run(run())

        assert scheduler.report_state.cycles >= 1

    def test_corrupt_log_does_not_stop_sampling(self, settings, advisory_config):
        settings.log_path.parent.mkdir(parents=True, exist_ok=True)
        with settings.log_path.open("wb") as fh:
            fh.write(b'{"timestamp":"t","level":"low","cpu":{},"mem":{},"disks":["x"]}\n')
            fh.write(b"\xff\xfe\n")
        scheduler = SamplingScheduler(settings, advisory_config, collect=_Sampler(*[10] * 50))

        async def run():
            scheduler.start()
            await asyncio.sleep(0.3)
            alive = not scheduler._task.done()
            await scheduler.stop()
            return alive

        assert asyncio.run(run()) is True
        assert scheduler.report_state.cycles >= 1
        assert scheduler.report_state.latest.stability.assessment_period == 1

    def test_failed_cycle_is_logged_and_the_loop_continues(self, settings, advisory_config):
        scheduler = SamplingScheduler(settings, advisory_config, collect=_Sampler(*[10] * 50))
        cycle = AsyncMock(side_effect=[RuntimeError("report exploded"), None, None, None])

        async def run():
            with patch.object(scheduler, "run_cycle", cycle):
                scheduler.start()
                await asyncio.sleep(1.5)
                alive = not scheduler._task.done()
                await scheduler.stop()
            return alive

        assert asyncio.run(run()) is True
        assert cycle.await_count >= 2
