"""
Sync Service
============
Pushes pending bug records to an external tracker through a caller-supplied
uploader and records the returned tracker ID.

Uploader contract:
    uploader(record: BugRecord) -> str | None
        Returns the external ID on success, None (or raises) on failure.

Rules:
    - Only unsynced records with occurrence_count >= min_occurrences are sent
    - A failed upload is counted and logged; the loop moves on
    - Overlapping sync_unsynced() calls return immediately with zero counts
    - No retry or backoff inside a cycle; a failed record is retried on the
      next cycle
    - start_auto_sync() runs sync_unsynced() every interval on a daemon
      thread until stop_auto_sync(); an error in one cycle is logged and
      the runner keeps going
"""
import logging
import threading
from typing import Callable, Optional

from bugregistry.core.config import MIN_OCCURRENCES_TO_SYNC, SYNC_INTERVAL_SECONDS
from bugregistry.models.bug_record import BugRecord
from bugregistry.services.dedup_engine import DedupEngine

logger = logging.getLogger(__name__)

Uploader = Callable[[BugRecord], Optional[str]]


class BugSyncService:

    def __init__(
        self,
        engine: DedupEngine,
        uploader: Uploader,
        min_occurrences: int = MIN_OCCURRENCES_TO_SYNC,
    ) -> None:
        self.engine = engine
        self.uploader = uploader
        self.min_occurrences = min_occurrences
        self._sync_lock = threading.Lock()

        self._runner_lock = threading.Lock()
        self._runner: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    def _upload(self, record: BugRecord) -> Optional[str]:
        try:
            external_id = self.uploader(record)
        except Exception as e:
            logger.error("Upload of bug %s failed: %s", record.fingerprint, e, exc_info=True)
            return None
        if not external_id:
            logger.warning("Upload of bug %s returned no tracker ID", record.fingerprint)
            return None
        return external_id

    def sync_unsynced(self) -> dict[str, int]:
        """
        Upload every significant pending record.

        Returns
        -------
        dict
            {"synced": int, "failed": int}
        """
        if not self._sync_lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping")
            return {"synced": 0, "failed": 0}

        synced = 0
        failed = 0
        try:
            pending = [
                record for record in self.engine.get_unsynced()
                if record.occurrence_count >= self.min_occurrences
            ]
            logger.info("Syncing %d bugs to tracker", len(pending))

            for record in pending:
                external_id = self._upload(record)
                if external_id is None:
                    failed += 1
                    continue
                self.engine.mark_synced(record.fingerprint, external_id)
                synced += 1

            logger.info("Sync complete: %d synced, %d failed", synced, failed)
        finally:
            self._sync_lock.release()

        return {"synced": synced, "failed": failed}

    def report_immediately(self, record: Optional[BugRecord]) -> bool:
        """Upload one record now, ignoring the occurrence threshold."""
        if record is None:
            return False
        external_id = self._upload(record)
        if external_id is None:
            return False
        return self.engine.mark_synced(record.fingerprint, external_id)

    def sync_status(self) -> dict:
        records = self.engine.get_all()
        unsynced = [r for r in records if r.synced_to is None]
        return {
            "total_bugs": len(records),
            "synced_count": len(records) - len(unsynced),
            "unsynced_count": len(unsynced),
            "pending_sync": sum(1 for r in unsynced if r.occurrence_count >= self.min_occurrences),
            "is_syncing": self.is_syncing,
            "auto_sync_running": self.is_auto_sync_running,
        }

    # ------------------------------------------------------------------
    # Periodic runner
    # ------------------------------------------------------------------
    @property
    def is_auto_sync_running(self) -> bool:
        with self._runner_lock:
            return self._runner is not None and self._runner.is_alive()

    def start_auto_sync(self, interval: float = SYNC_INTERVAL_SECONDS) -> bool:
        """
        Start syncing in the background every `interval` seconds.

        Returns False if a runner is already active.
        """
        if interval <= 0:
            raise ValueError(f"Sync interval must be positive, got {interval}")

        with self._runner_lock:
            if self._runner is not None and self._runner.is_alive():
                return False
            stop_event = threading.Event()
            runner = threading.Thread(
                target=self._run_periodic,
                args=(interval, stop_event),
                name="bug-sync",
                daemon=True,
            )
            self._stop_event = stop_event
            self._runner = runner
            runner.start()

        logger.info("Auto sync started (every %.1fs)", interval)
        return True

    def stop_auto_sync(self, timeout: Optional[float] = None) -> bool:
        """Signal the runner to stop and wait for it. Returns False if none was running."""
        with self._runner_lock:
            runner, stop_event = self._runner, self._stop_event
            self._runner = None
            self._stop_event = None

        if runner is None:
            return False
        stop_event.set()
        runner.join(timeout)
        logger.info("Auto sync stopped")
        return True

    def _run_periodic(self, interval: float, stop_event: threading.Event) -> None:
        while not stop_event.wait(interval):
            try:
                self.sync_unsynced()
            except Exception as e:
                logger.error("Auto sync cycle failed: %s", e, exc_info=True)
