"""Background job hosting for the watcher and notification dispatcher."""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from custody.core.timezone import UTC
from custody.services.event_channel import NotificationDispatcher
from custody.workers.confirmation_watcher import ConfirmationWatcher

logger = logging.getLogger(__name__)

WATCHER_JOB_ID = "confirmation_watcher"
NOTIFICATION_JOB_ID = "notification_dispatcher"


class WorkerRunner:
    """
    Runs the recurring background jobs on an APScheduler thread pool.

    Jobs are non-reentrant (max_instances=1) and coalesced, so a slow tick
    delays the next one instead of overlapping it.
    """

    def __init__(
        self,
        watcher: ConfirmationWatcher,
        dispatcher: NotificationDispatcher,
        watcher_interval_seconds: float = 8,
        notification_interval_seconds: float = 5,
        after_tick: Optional[Callable[[], None]] = None,
    ):
        self._watcher = watcher
        self._dispatcher = dispatcher
        self._watcher_interval = watcher_interval_seconds
        self._notification_interval = notification_interval_seconds
        self._after_tick = after_tick
        self.scheduler = BackgroundScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 30},
            timezone=UTC,
        )

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_watcher_tick,
            trigger=IntervalTrigger(seconds=self._watcher_interval),
            id=WATCHER_JOB_ID,
            name="Confirmation Watcher",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_notification_tick,
            trigger=IntervalTrigger(seconds=self._notification_interval),
            id=NOTIFICATION_JOB_ID,
            name="Notification Dispatcher",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Background workers started (watcher every {self._watcher_interval}s, "
            f"notifications every {self._notification_interval}s)"
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop scheduling; a tick in progress finishes its current row."""
        self._watcher.stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Background workers stopped")

    def run_watcher_tick(self) -> None:
        if self._watcher.stopped:
            return
        try:
            self._watcher.run_once()
        finally:
            if self._after_tick is not None:
                self._after_tick()

    def run_notification_tick(self) -> None:
        delivered = self._dispatcher.dispatch_once()
        if delivered:
            logger.debug(f"Delivered {delivered} transaction notifications")
