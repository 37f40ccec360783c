"""
Main entry point for the standalone scheduler service.
Runs reinvest passes on an interval without the HTTP server.
"""

import asyncio
import signal

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.core.database import close_database, init_database
from fee_flywheel.core.logging import setup_logging
from .reinvest_scheduler import ReinvestScheduler


logger = structlog.get_logger(__name__)


class SchedulerMain:
    """Scheduler service coordinator."""

    def __init__(self):
        self.scheduler = None
        self.running = False
        self._stopped = asyncio.Event()

    async def initialize(self):
        """Initialize scheduler components."""
        try:
            logger.info("Initializing scheduler service")
            await init_database()
            self.scheduler = ReinvestScheduler(enabled=True)
            logger.info("Scheduler service initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize scheduler", error=str(e))
            raise

    async def start(self):
        """Start the scheduler and block until stopped."""
        logger.info("Starting scheduler service", interval=settings.scheduler_interval)
        self.running = True
        await self.scheduler.start()
        await self._stopped.wait()

    async def stop(self):
        """Stop the scheduler service."""
        if not self.running:
            return

        logger.info("Stopping scheduler service")
        self.running = False

        if self.scheduler:
            await self.scheduler.stop()
        await close_database()

        self._stopped.set()
        logger.info("Scheduler service stopped")


async def main():
    """Main function to run the scheduler service."""
    setup_logging(settings.log_file)

    service = SchedulerMain()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(service.stop()))

    try:
        await service.initialize()
        await service.start()
    except Exception as e:
        logger.error("Scheduler service failed", error=str(e))
        raise
    finally:
        await service.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
