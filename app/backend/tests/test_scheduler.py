"""
Test the interval scheduler.
"""

import asyncio

import pytest

from fee_flywheel.scheduler.reinvest_scheduler import ReinvestScheduler, SchedulerStatus
from fee_flywheel.services.reinvest.core.types import PassReport, PassStats


class SlowOrchestrator:
    def __init__(self, gate: asyncio.Event = None, error: Exception = None):
        self.gate = gate
        self.error = error
        self.runs = 0
        self.finished = 0
        self.closed = 0

    async def run_pass(self):
        self.runs += 1
        if self.gate:
            await self.gate.wait()
        if self.error:
            raise self.error
        self.finished += 1
        return PassReport(stats=PassStats(total_wallets=3, processed=3))

    async def close(self):
        self.closed += 1


@pytest.mark.asyncio
async def test_run_once_records_success():
    orchestrator = SlowOrchestrator()
    scheduler = ReinvestScheduler(orchestrator_factory=lambda: orchestrator, interval=60, enabled=True)

    report = await scheduler.run_once()

    assert report.stats.processed == 3
    assert scheduler.stats.successful_runs == 1
    assert scheduler.stats.last_pass["processed"] == 3
    assert scheduler.status is SchedulerStatus.WAITING
    assert orchestrator.closed == 1


@pytest.mark.asyncio
async def test_run_once_records_failure_without_raising():
    orchestrator = SlowOrchestrator(error=RuntimeError("rpc down"))
    scheduler = ReinvestScheduler(orchestrator_factory=lambda: orchestrator, interval=60, enabled=True)

    assert await scheduler.run_once() is None
    assert scheduler.stats.failed_runs == 1
    assert scheduler.stats.last_error == "rpc down"
    assert scheduler.status is SchedulerStatus.ERROR
    assert orchestrator.closed == 1


@pytest.mark.asyncio
async def test_tick_skips_while_pass_running():
    gate = asyncio.Event()
    orchestrator = SlowOrchestrator(gate=gate)
    scheduler = ReinvestScheduler(orchestrator_factory=lambda: orchestrator, interval=60, enabled=True)

    assert scheduler.tick() is True
    await asyncio.sleep(0)
    assert scheduler.is_processing
    assert scheduler.tick() is False
    assert scheduler.stats.skipped_ticks == 1

    gate.set()
    await scheduler._pass_task
    assert orchestrator.runs == 1
    assert scheduler.tick() is True
    await scheduler._pass_task
    assert orchestrator.runs == 2


@pytest.mark.asyncio
async def test_start_and_stop():
    orchestrator = SlowOrchestrator()
    scheduler = ReinvestScheduler(orchestrator_factory=lambda: orchestrator, interval=3600, enabled=True)

    async with scheduler:
        await asyncio.sleep(0.01)
        health = await scheduler.health_check()
        assert health["healthy"]
        assert orchestrator.runs == 1

    assert scheduler.status is SchedulerStatus.STOPPED


@pytest.mark.asyncio
async def test_disabled_scheduler_does_not_start():
    scheduler = ReinvestScheduler(orchestrator_factory=SlowOrchestrator, interval=1, enabled=False)

    await scheduler.start()

    assert scheduler.status is SchedulerStatus.STOPPED
    assert (await scheduler.health_check())["healthy"]


@pytest.mark.asyncio
async def test_stop_waits_for_running_pass():
    gate = asyncio.Event()
    orchestrator = SlowOrchestrator(gate=gate)
    scheduler = ReinvestScheduler(orchestrator_factory=lambda: orchestrator, interval=3600, enabled=True)

    await scheduler.start()
    await asyncio.sleep(0.01)
    assert scheduler.is_processing

    asyncio.get_running_loop().call_later(0.05, gate.set)
    await scheduler.stop()

    assert orchestrator.finished == 1
    assert orchestrator.closed == 1
    assert scheduler.stats.successful_runs == 1
    assert scheduler.status is SchedulerStatus.STOPPED
