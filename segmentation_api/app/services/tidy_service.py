"""
Removal of expired memberships.

``TidyService.tidy_relations`` deletes every membership whose
expiration has passed.  ``TidySweeper`` calls it on a fixed interval
from a background thread for the lifetime of the application.  The
sweeper runs in parallel with request handling and shares nothing
with it but the database file.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from typing import Optional

from segmentation_api.app.core.db import Database, to_db_timestamp, utcnow
from segmentation_api.app.core.exceptions import SegmentationError, wrap_store_error


logger = logging.getLogger(__name__)

DEFAULT_TIDY_INTERVAL = 30.0


class TidyService:
    """Service deleting expired membership relations."""

    def __init__(self, db: Database):
        self.db = db

    def tidy_relations(self, now: Optional[datetime] = None) -> int:
        """Delete memberships expired as of ``now`` and return how many.

        Memberships without an expiration are never touched.
        """
        cutoff = to_db_timestamp(now or utcnow())
        with self.db.transaction() as cursor:
            try:
                cursor.execute(
                    """
                    DELETE FROM user_segment_relations
                    WHERE expires_at IS NOT NULL AND expires_at <= ?
                    """,
                    (cutoff,),
                )
            except sqlite3.Error as exc:
                raise wrap_store_error("error while tidying relations", exc) from exc
            deleted = cursor.rowcount
        if deleted:
            logger.info("Removed %d expired membership(s)", deleted)
        return deleted


class TidySweeper:
    """Runs ``TidyService.tidy_relations`` periodically in a thread.

    The first sweep happens right after ``start``.  A failed sweep is
    logged and the next one still runs.  Missed ticks are not made up:
    each sweep only looks at what has expired by the time it runs.
    """

    def __init__(self, tidy_service: TidyService, interval: float = DEFAULT_TIDY_INTERVAL):
        if interval <= 0:
            raise ValueError("tidy interval must be positive")
        self.tidy_service = tidy_service
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in a background thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="tidy-sweeper", daemon=True)
        self._thread.start()
        logger.info("TidySweeper started, interval %.1fs", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the sweeper and wait for the current sweep to finish."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        if self._thread.is_alive():
            # Keep the handle so start() cannot spawn a second sweeper.
            logger.warning("TidySweeper did not stop within %ss", timeout)
            return
        self._thread = None
        logger.info("TidySweeper stopped")

    def sweep_once(self) -> None:
        try:
            self.tidy_service.tidy_relations()
        except SegmentationError as exc:
            logger.error("Error while tidying relations: %s", exc)
        except Exception:
            # The loop must outlive any single sweep.
            logger.exception("Unexpected error while tidying relations")

    def _run(self) -> None:
        self.sweep_once()
        while not self._stop_event.wait(self.interval):
            self.sweep_once()
