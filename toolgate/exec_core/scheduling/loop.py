"""Background loop driving ``MetricScheduler.run_due_metrics`` at a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .scheduler import MetricScheduler

logger = logging.getLogger(__name__)


class MetricSchedulerLoop:
    """Periodically run due metrics until stopped.

    A failing tick is logged and the loop keeps going; metric failures are
    already captured on their execution rows by the scheduler.
    """

    def __init__(self, scheduler: MetricScheduler, *, interval_seconds: float = 60.0, org_id: Optional[str] = None):
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._org_id = org_id
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> List[str]:
        try:
            triggered = await self._scheduler.run_due_metrics(self._org_id)
        except Exception:
            logger.exception("Scheduler tick failed")
            return []
        if triggered:
            logger.info(f"Scheduler tick triggered {len(triggered)} metric(s)")
        return triggered

    async def _run(self) -> None:
        while not self._stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Metric scheduler loop started (interval={self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        await self._scheduler.wait_for_alerts()
        logger.info("Metric scheduler loop stopped")
