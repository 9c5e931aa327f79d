"""
Periodic Lead Sync Scheduler
Runs inside the API process and is toggled at runtime (POST /api/sync/schedule)

BEHAVIOUR:
- Every interval, launches orchestrator.run_sync(selector) as its own task
- A tick while a run is in flight is skipped (the run guard would skip it anyway)
- stop() cancels the tick loop only; an in-flight run finishes on its own
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional, Set

from leadsync.models.schemas.sync import ScheduleState, SyncSelector
from leadsync.services.sync.orchestration.lead_sync import SyncOrchestrator
from leadsync.services.sync.persistence import utcnow

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Cancellable periodic trigger owned by the service, not by any client session."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval_seconds: float = 300.0,
        selector: SyncSelector = SyncSelector.ALL
    ):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self.selector = selector
        self.last_triggered_at: Optional[datetime] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._run_tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def state(self) -> ScheduleState:
        return ScheduleState(
            enabled=self.enabled,
            interval_seconds=self.interval_seconds,
            sync_in_flight=self.orchestrator.is_running,
            last_triggered_at=self.last_triggered_at,
        )

    def start(self, interval_seconds: Optional[float] = None):
        """Start (or restart with a new interval) the periodic trigger."""
        if interval_seconds is not None:
            if interval_seconds <= 0:
                raise ValueError("interval_seconds must be > 0")
            self.interval_seconds = interval_seconds

        if self.enabled:
            self._loop_task.cancel()

        self._loop_task = asyncio.create_task(self._tick_loop(), name="lead-sync-scheduler")
        logger.info(f"⏰ Sync scheduler started: {self.selector.value} every {self.interval_seconds:.0f}s")

    def stop(self):
        """Stop the periodic trigger without waiting for an in-flight run."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
            logger.info("⏹️  Sync scheduler stopped")

    def trigger(self) -> Optional[asyncio.Task]:
        """Launch one scheduled run now, unless one is already in flight."""
        if self.orchestrator.is_running:
            logger.info("⏭️  Scheduled sync skipped: a run is still in flight")
            return None

        self.last_triggered_at = utcnow()
        task = asyncio.create_task(self.orchestrator.run_sync(self.selector), name="lead-sync-run")
        self._run_tasks.add(task)
        task.add_done_callback(self._on_run_done)
        return task

    def _on_run_done(self, task: asyncio.Task):
        self._run_tasks.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"❌ Scheduled sync crashed: {task.exception()}")

    async def _tick_loop(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.trigger()

    async def wait_for_runs(self):
        """Await scheduled runs still in flight (used on shutdown and in tests)."""
        if self._run_tasks:
            await asyncio.gather(*list(self._run_tasks), return_exceptions=True)
