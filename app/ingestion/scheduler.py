"""Fixed-interval trigger for ingestion runs."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from app.core.logging import get_logger

log = get_logger("ingestion.scheduler")

Job = Callable[[], Awaitable[Any]]


class IngestionScheduler:
    """Runs ``job`` every ``interval_seconds`` on a background asyncio task.

    A tick that raises is logged and swallowed so the next tick still fires.
    ``start`` and ``stop`` are explicit; nothing runs until ``start`` is called.
    """

    def __init__(self, job: Job, interval_seconds: float, run_immediately: bool = False):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            log.warning("Scheduler already running; ignoring start()")
            return
        log.info(f"Scheduled ingestion started (interval: {self.interval_seconds}s)")
        self._task = asyncio.create_task(self._loop(), name="ingestion-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        log.info("Cancelling scheduled ingestion task...")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def tick(self) -> bool:
        """Run the job once; returns False when it raised."""
        self.ticks += 1
        log.info("Scheduled ingestion triggered")
        try:
            await self.job()
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Scheduled ingestion failed: {exc}")
            return False
        log.info("Scheduled ingestion completed")
        return True

    async def _loop(self) -> None:
        try:
            if self.run_immediately:
                await self.tick()
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self.tick()
        except asyncio.CancelledError:
            log.info("Scheduled ingestion task cancelled")
            raise
