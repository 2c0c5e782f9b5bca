"""
Periodic Clustering Job

Runs clustering on a fixed interval in a worker thread so the event
loop (and scoring) is never blocked. Stopping the job sets the cancel
event, which is checked between clusters and again before publishing;
a cancelled run publishes nothing.
"""

import asyncio
import logging
import threading
from contextlib import suppress
from typing import Callable, Optional

from .engine import ClusteringCancelled

logger = logging.getLogger("riskengine.clustering")

ClusterRunner = Callable[[threading.Event], object]


class ClusterJob:
    """Background clustering loop."""

    def __init__(self, runner: ClusterRunner, interval_seconds: float = 300):
        """
        Initialize job.

        Args:
            runner: Runs one clustering pass, honoring the cancel event
            interval_seconds: Delay between runs
        """
        self.runner = runner
        self.interval_seconds = interval_seconds
        self._cancel = threading.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> object:
        """Run one clustering pass in a worker thread."""
        return await asyncio.to_thread(self.runner, self._cancel)

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except ClusteringCancelled:
                logger.info("Clustering run cancelled")
                break
            except Exception:
                logger.exception("Clustering run failed")

            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._cancel.clear()
        self._task = asyncio.create_task(self._loop(), name="cluster-job")
        logger.info("Clustering job started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        self._cancel.set()
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Clustering job stopped")
