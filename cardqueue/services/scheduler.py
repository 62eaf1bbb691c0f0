"""Background scheduler triggering pending-queue synchronization."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from cardqueue.config import SyncConfig
from cardqueue.core.time_utils import UTC, utc_now

if TYPE_CHECKING:
    from cardqueue.application.queue_sync import PendingQueueService
    from cardqueue.domain.models import PendingItem

logger = logging.getLogger(__name__)

PERIODIC_JOB_ID = "pending_queue_sync"
SOON_JOB_ID = "pending_queue_sync_soon"


class SyncScheduler:
    """Runs ``PendingQueueService.sync_all`` periodically and on demand.

    ``schedule_soon`` is called after something was queued; repeated calls
    within the debounce window collapse into a single pass.
    """

    def __init__(self, service: PendingQueueService, sync_config: SyncConfig | None = None) -> None:
        """Initialize scheduler.

        Args:
            service: Queue service to drain
            sync_config: Interval, debounce and auto-sync settings
        """
        self.service = service
        self.cfg = sync_config or SyncConfig()
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    async def start(self) -> None:
        """Start the scheduler with the periodic job when auto-sync is enabled."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler(timezone=UTC)

        if self.cfg.auto_sync_enabled:
            self._scheduler.add_job(
                self.run_sync,
                trigger=IntervalTrigger(minutes=self.cfg.sync_interval_minutes),
                id=PERIODIC_JOB_ID,
                name="Pending queue sync",
                replace_existing=True,
                max_instances=1,  # Prevent overlapping runs
                coalesce=True,
            )
            logger.info(
                "scheduler_sync_job_added",
                extra={
                    "job_id": PERIODIC_JOB_ID,
                    "interval_minutes": self.cfg.sync_interval_minutes,
                },
            )
        else:
            logger.info("scheduler_sync_job_skipped", extra={"auto_sync_enabled": False})

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    def schedule_soon(self) -> datetime | None:
        """Schedule one pass ``debounce_seconds`` from now.

        Returns:
            Run time of the pending one-shot job, or None when not started
        """
        if not self._scheduler or not self._started:
            logger.debug("scheduler_not_running_sync_not_scheduled")
            return None

        run_date = utc_now() + timedelta(seconds=self.cfg.debounce_seconds)
        self._scheduler.add_job(
            self.run_sync,
            trigger=DateTrigger(run_date=run_date),
            id=SOON_JOB_ID,
            name="Pending queue sync (debounced)",
            replace_existing=True,
        )
        logger.debug("scheduler_sync_soon", extra={"run_date": run_date.isoformat()})
        return run_date

    def on_item_queued(self, item: PendingItem) -> None:
        """``PendingQueueService.on_enqueue`` hook: sync shortly after a capture."""
        logger.debug("scheduler_item_queued", extra={"item_id": item.id, "kind": item.kind.value})
        self.schedule_soon()

    async def schedule_if_pending(self) -> datetime | None:
        """Schedule a pass soon when anything is already queued (e.g. at startup)."""
        pending = await self.service.total_pending()
        if not pending:
            return None
        logger.info("scheduler_pending_items_found", extra={"queue_length": pending})
        return self.schedule_soon()

    async def run_sync(self) -> None:
        """Execute one scheduled pass over every queue. Never raises."""
        correlation_id = f"scheduled_{utc_now().strftime('%Y%m%d_%H%M%S')}"
        try:
            result = await self.service.sync_all()
        except Exception as e:
            logger.exception(
                "scheduled_queue_sync_failed",
                extra={"cid": correlation_id, "error": str(e)},
            )
            return

        if result.total_success or result.total_errors or result.storage_errors:
            logger.info(
                "scheduled_queue_sync_complete",
                extra={
                    "cid": correlation_id,
                    "success_count": result.total_success,
                    "error_count": result.total_errors,
                    "storage_errors": result.storage_errors,
                    "duration_seconds": result.duration_seconds,
                },
            )

    def get_next_run_time(self, job_id: str = PERIODIC_JOB_ID) -> datetime | None:
        """Get next scheduled run time for a job, or None if it does not exist."""
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None
