# services/expiration_sweeper.py
import logging
import threading
from datetime import datetime
from typing import Callable, ContextManager, Optional

from app.core.clock import utcnow
from app.repositories.base import StorageGateway

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    """
    Background loop that deletes assignments whose deadline has passed.

    Waits one interval, sweeps, repeats. A failed sweep is logged and the next
    tick runs as usual. ``stop()`` sets the stop event, which also cuts the
    current wait short, so no further tick starts after it returns.
    Expirations are not written to the history table.
    """

    def __init__(
        self,
        storage_scope: Callable[[], ContextManager[StorageGateway]],
        interval_seconds: float = 3600.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage_scope = storage_scope
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: Optional[datetime] = None) -> int:
        """Deletes every assignment with ``delete_at < now``; returns how many."""
        now = now or self.clock()
        with self.storage_scope() as storage:
            with storage.unit_of_work():
                deleted = storage.delete_expired(now)
        logger.info("Expiration sweep removed %d assignment(s) due before %s", deleted, now.isoformat())
        return deleted

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiration sweep failed, will retry on the next tick")
        logger.info("Expiration sweeper stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="expiration-sweeper", daemon=True)
        self._thread.start()
        logger.info("Expiration sweeper started, interval %.0fs", self.interval_seconds)

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
