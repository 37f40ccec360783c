"""
Interval scheduler for reinvest passes.

Runs a pass every `scheduler_interval` seconds as an alternative to the
external cron trigger. A tick that fires while this scheduler's previous
pass is still running is skipped.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.services.reinvest import ReinvestOrchestrator, build_orchestrator
from fee_flywheel.services.reinvest.core.types import PassReport


logger = structlog.get_logger(__name__)


class SchedulerStatus(Enum):
    """Status of the reinvest scheduler."""
    STOPPED = "stopped"
    WAITING = "waiting"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    skipped_ticks: int = 0
    last_error: Optional[str] = None
    last_pass: Optional[Dict[str, Any]] = None
    uptime_start: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "skipped_ticks": self.skipped_ticks,
            "last_error": self.last_error,
            "last_pass": self.last_pass,
        }


class ReinvestScheduler:
    """Periodically runs a reinvest pass in the background."""

    def __init__(
        self,
        orchestrator_factory: Optional[Callable[[], ReinvestOrchestrator]] = None,
        interval: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        self.logger = logger.bind(service="reinvest_scheduler")

        self.orchestrator_factory = orchestrator_factory or build_orchestrator
        self.interval = interval if interval is not None else settings.scheduler_interval
        self.enabled = enabled if enabled is not None else settings.scheduler_enabled

        self.status = SchedulerStatus.STOPPED
        self.stats = SchedulerStats(uptime_start=datetime.now(timezone.utc))
        self._should_stop = False
        self._scheduler_task: Optional[asyncio.Task] = None
        self._pass_task: Optional[asyncio.Task] = None

        self.logger.info(
            "Reinvest scheduler initialized",
            enabled=self.enabled,
            interval=self.interval
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    @property
    def is_processing(self) -> bool:
        return self._pass_task is not None and not self._pass_task.done()

    async def start(self):
        """Start the scheduler loop."""
        if not self.enabled:
            self.logger.info("Reinvest scheduler is disabled")
            return

        if self.status != SchedulerStatus.STOPPED:
            self.logger.warning("Scheduler already running", current_status=self.status.value)
            return

        self._should_stop = False
        self.status = SchedulerStatus.WAITING
        self._scheduler_task = asyncio.create_task(self._scheduler_loop())
        self.logger.info("Reinvest scheduler started")

    async def stop(self):
        """Stop the loop. An in-flight pass is awaited, never cancelled."""
        if self.status == SchedulerStatus.STOPPED:
            return

        self.logger.info("Stopping reinvest scheduler")
        self._should_stop = True

        if self._scheduler_task and not self._scheduler_task.done():
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass

        if self.is_processing:
            self.logger.info("Waiting for running pass to finish")
            await self._pass_task

        self.status = SchedulerStatus.STOPPED
        self.logger.info("Reinvest scheduler stopped")

    async def _scheduler_loop(self):
        self.logger.info("Scheduler loop started")

        while not self._should_stop:
            try:
                self.tick()
                self.stats.next_run = datetime.now(timezone.utc) + timedelta(seconds=self.interval)
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                self.logger.info("Scheduler loop cancelled")
                break

        self.logger.info("Scheduler loop stopped")

    def tick(self) -> bool:
        """Start a pass unless one is already running. Returns True if started."""
        if self.is_processing:
            self.stats.skipped_ticks += 1
            self.logger.warning("Previous pass still running, skipping tick", skipped=self.stats.skipped_ticks)
            return False

        self._pass_task = asyncio.create_task(self.run_once())
        return True

    async def run_once(self) -> Optional[PassReport]:
        """Run one pass and record its outcome. Errors are logged, not raised."""
        self.status = SchedulerStatus.PROCESSING
        self.stats.total_runs += 1
        orchestrator = self.orchestrator_factory()

        try:
            report = await orchestrator.run_pass()
            self.stats.successful_runs += 1
            self.stats.last_pass = report.stats.to_dict()
            self.stats.last_error = None
            self.status = SchedulerStatus.WAITING

            self.logger.info(
                "Scheduled pass completed",
                processed=report.stats.processed,
                bought=report.stats.bought,
                errors=report.stats.errors,
                duration_ms=report.stats.duration_ms
            )
            return report

        except Exception as e:
            self.stats.failed_runs += 1
            self.stats.last_error = str(e)
            self.status = SchedulerStatus.ERROR
            self.logger.error(
                "Scheduled pass failed",
                error=str(e),
                total_runs=self.stats.total_runs,
                failed_runs=self.stats.failed_runs
            )
            return None

        finally:
            self.stats.last_run = datetime.now(timezone.utc)
            try:
                await orchestrator.close()
            except Exception as e:
                self.logger.warning("Failed to close orchestrator clients", error=str(e))

    async def health_check(self) -> Dict[str, Any]:
        """Report scheduler health."""
        uptime_seconds = (datetime.now(timezone.utc) - self.stats.uptime_start).total_seconds()
        healthy = not self.enabled or (
            self._scheduler_task is not None and not self._scheduler_task.done()
        )
        return {
            "healthy": healthy,
            "status": self.status.value,
            "enabled": self.enabled,
            "processing": self.is_processing,
            "uptime_seconds": uptime_seconds,
            "interval": self.interval,
            "scheduler_stats": self.stats.to_dict(),
        }


# Global scheduler instance
_reinvest_scheduler: Optional[ReinvestScheduler] = None


async def get_reinvest_scheduler() -> ReinvestScheduler:
    """Get or create global ReinvestScheduler instance."""
    global _reinvest_scheduler
    if _reinvest_scheduler is None:
        _reinvest_scheduler = ReinvestScheduler()
    return _reinvest_scheduler


async def shutdown_reinvest_scheduler():
    """Stop the global scheduler."""
    global _reinvest_scheduler
    if _reinvest_scheduler:
        await _reinvest_scheduler.stop()
        _reinvest_scheduler = None
