"""Background scheduler that runs the error-log purge on a fixed interval.

The loop waits on an ``asyncio.Event`` rather than sleeping, so ``stop()``
wakes it immediately. A failed purge is logged and the loop carries on to
the next cycle; it is never retried within a cycle.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from app.core.config import Settings, get_settings
from app.core.database import get_session_maker
from app.core.logging import get_logger
from app.features.cleanup.service import CleanupResult, run_cleanup

logger = get_logger(__name__)

PurgeCallable = Callable[[], Awaitable[CleanupResult]]


class CleanupScheduler:
    """Runs a purge every ``cleanup_interval_hours`` until stopped."""

    def __init__(
        self,
        settings: Settings | None = None,
        purge: PurgeCallable | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            settings: Application settings.
            purge: Coroutine function performing one purge. Defaults to
                ``run_cleanup`` against the application session maker.
            interval_seconds: Override for the configured interval.
        """
        self.settings = settings or get_settings()
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else self.settings.cleanup_interval_seconds
        )
        self._purge = purge or self._default_purge
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.cycles = 0

    async def _default_purge(self) -> CleanupResult:
        return await run_cleanup(get_session_maker(), self.settings)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop on the running event loop. No-op when already running."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="cleanup-scheduler")
        logger.info("cleanup.scheduler_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to exit."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("cleanup.scheduler_stopped", cycles=self.cycles)

    async def run_once(self) -> bool:
        """Run a single purge cycle.

        Returns:
            True if the purge succeeded, False if it failed.
        """
        self.cycles += 1
        try:
            result = await self._purge()
        except Exception as e:
            logger.error(
                "cleanup.purge_failed",
                cycle=self.cycles,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return False

        logger.info(
            "cleanup.cycle_completed",
            cycle=self.cycles,
            deleted_error_records=result.deleted_error_records,
        )
        return True

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                continue
