"""
Recurring background sync sweeps.

AutoSyncScheduler runs WorkspaceSyncService.sync_all() every N minutes on
the running event loop. All sweeps it starts, plus any started through
run_now(), pass through one in-flight gate: a tick that finds a sweep
already running is skipped rather than queued.

Example:
    >>> scheduler = AutoSyncScheduler(service, interval_minutes=30)
    >>> scheduler.start()
    >>> ...
    >>> await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging

from .exceptions import NotConnectedError, WorkspaceError
from .models import SyncReport
from .sync import WorkspaceSyncService

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    """
    Periodic sync driver with a single in-flight gate.

    Errors from a sweep are logged and kept in ``last_error``; they never
    escape the loop.

    Attributes:
        interval_minutes: Minutes between sweeps
        last_report: Report of the most recent completed sweep
        last_error: Message of the most recent failed sweep, or None
    """

    def __init__(
        self,
        service: WorkspaceSyncService,
        interval_minutes: int = 30,
        _interval_seconds_override: float | None = None,
    ) -> None:
        """
        Args:
            service: Sync service to drive
            interval_minutes: Minutes between sweeps (must be >= 1)
            _interval_seconds_override: Interval in seconds (testing only)

        Raises:
            ValueError: If interval_minutes < 1
        """
        if interval_minutes < 1:
            raise ValueError(f"interval_minutes must be >= 1, got {interval_minutes}")

        self.service = service
        self.interval_minutes = interval_minutes
        self._interval_seconds_override = _interval_seconds_override
        self._gate = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.last_report: SyncReport | None = None
        self.last_error: str | None = None

    @property
    def interval_seconds(self) -> float:
        if self._interval_seconds_override is not None:
            return self._interval_seconds_override
        return self.interval_minutes * 60.0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_syncing(self) -> bool:
        return self._gate.locked()

    def start(self) -> None:
        """Start the loop on the running event loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Auto sync started, every %.0fs", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Auto sync stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.tick()

    async def tick(self) -> SyncReport | None:
        """
        Run one sweep unless one is already in flight.

        Returns:
            The sweep's report, or None if skipped or failed
        """
        if self._gate.locked():
            logger.debug("Sync already in progress, skipping scheduled sweep")
            return None
        return await self.run_now()

    async def run_now(self) -> SyncReport | None:
        """Run one sweep, waiting for any in-flight sweep to finish first."""
        async with self._gate:
            try:
                report = await self.service.sync_all()
            except NotConnectedError:
                logger.debug("No workspace connection, nothing to sync")
                return None
            except WorkspaceError as e:
                logger.warning("Scheduled sync failed: %s", e)
                self.last_error = str(e)
                return None
            except Exception as e:
                logger.exception("Unexpected error in scheduled sync")
                self.last_error = str(e) or type(e).__name__
                return None

            self.last_report = report
            self.last_error = report.errors[-1] if report.errors else None
            if report.notes_failed:
                logger.warning("Scheduled sync: %d notes failed", report.notes_failed)
            return report


__all__ = ["AutoSyncScheduler"]
