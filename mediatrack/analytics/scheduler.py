"""
Periodic summary recalculation.
"""

import asyncio
from typing import Optional

import structlog

from mediatrack.analytics.summary import SummaryEngine

logger = structlog.get_logger(__name__)


class SummaryRefresher:
    """
    Background task recomputing every user's summary on a fixed interval.

    Started and stopped by the application lifespan.
    """

    def __init__(self, engine: SummaryEngine, interval_seconds: float, concurrency: int = 4):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.concurrency = concurrency
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="summary-refresher")
        logger.info("Summary refresher started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Summary refresher stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.engine.recompute_all(self.concurrency)
            except Exception as e:
                # the store may be briefly unavailable; try again next tick
                logger.error("Summary refresh run failed", error=str(e), error_type=type(e).__name__)
