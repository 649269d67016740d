"""In-process scheduler for the booking lifecycle sweeps.

Used when no Celery beat is deployed (``RUN_SWEEPERS_IN_PROCESS``). Each
sweep runs on its own loop; a failing run is logged and the loop carries on.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.services.lifecycle_sweeper import LifecycleSweeper

logger = logging.getLogger(__name__)


class LifecycleScheduler:
    """Runs the abandon and completion sweeps on fixed intervals."""

    def __init__(
        self,
        sweeper: LifecycleSweeper,
        abandon_interval_seconds: int,
        completion_interval_seconds: int,
    ) -> None:
        self.sweeper = sweeper
        self.abandon_interval_seconds = abandon_interval_seconds
        self.completion_interval_seconds = completion_interval_seconds
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    def start(self) -> None:
        """Start both sweep loops; the first run of each happens immediately."""
        self._stop.clear()
        self._tasks = [
            asyncio.create_task(
                self._run_forever(
                    "abandon",
                    self.sweeper.abandon_stale_bookings,
                    self.abandon_interval_seconds,
                )
            ),
            asyncio.create_task(
                self._run_forever(
                    "completion",
                    self.sweeper.complete_finished_bookings,
                    self.completion_interval_seconds,
                )
            ),
        ]
        logger.info("Booking lifecycle scheduler started")

    async def stop(self) -> None:
        """Signal both loops to stop and wait for them."""
        self._stop.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Booking lifecycle scheduler stopped")

    async def _run_forever(
        self,
        name: str,
        sweep: Callable[[], Awaitable[object]],
        interval_seconds: int,
    ) -> None:
        while not self._stop.is_set():
            try:
                await sweep()
            except Exception as e:
                logger.error(f"Scheduled {name} sweep error: {e}")

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
