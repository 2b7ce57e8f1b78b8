"""Periodic and reconnect-triggered sync for a SyncEngine.

The engine never schedules itself; this is the external component that calls
``sync()`` on an interval and whenever connectivity comes back.
"""

import logging
import threading
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config
from .sync.sync_engine import SyncEngine
from .sync.types import NetworkStatus, SyncResult

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "sync_job"


class SyncScheduler:
    """Owns the scheduler that drives a SyncEngine."""

    def __init__(
        self,
        engine: SyncEngine,
        network_status: Callable[[], NetworkStatus],
        interval_seconds: int = 60,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """Initialize the scheduler.

        Args:
            engine: Engine to drive
            network_status: Returns the current connectivity on each run
            interval_seconds: Seconds between periodic syncs
            scheduler: Optional scheduler instance (for testing)
        """
        self.engine = engine
        self.network_status = network_status
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()
        self._was_connected: Optional[bool] = None
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        engine: SyncEngine,
        network_status: Callable[[], NetworkStatus],
    ) -> "SyncScheduler":
        return cls(engine, network_status, interval_seconds=config.sync.interval_seconds)

    def start(self) -> None:
        """Start the periodic sync job."""
        self.scheduler.add_job(
            self.run_sync,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SYNC_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Sync loop started (interval: {self.interval_seconds}s)")

    def stop(self) -> None:
        """Shut down the scheduler if running."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def reschedule(self, interval_seconds: int) -> None:
        """Change the sync interval on the fly."""
        self.interval_seconds = interval_seconds
        if self.scheduler.running:
            self.scheduler.reschedule_job(
                SYNC_JOB_ID,
                trigger=IntervalTrigger(seconds=interval_seconds),
            )

    def trigger_sync(self, job_id: str = "immediate_sync") -> None:
        """Schedule a one-off sync (e.g. after a network change)."""
        if self.scheduler.running:
            self.scheduler.add_job(self.run_sync, id=job_id, replace_existing=True)

    def notify_network_change(self, status: NetworkStatus) -> bool:
        """Record a connectivity change; trigger a sync when coming online.

        Returns:
            True if a sync was triggered
        """
        with self._state_lock:
            was_connected = self._was_connected
            self._was_connected = status.is_connected

        if status.is_connected and was_connected is False:
            if self.engine.get_pending_count() > 0:
                logger.info("Back online, triggering sync")
                self.trigger_sync("reconnect_sync")
                return True
        return False

    def run_sync(self) -> list[SyncResult]:
        """Perform one sync cycle.

        Storage-write failures are logged rather than raised into the
        scheduler thread.
        """
        try:
            return self.engine.sync(self.network_status())
        except Exception as e:
            logger.error(f"Sync cycle failed: {e}", exc_info=True)
            return []
