"""Background worker that flushes the outbox on an interval."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from unireg.notifier.outbox import Outbox

logger = logging.getLogger(__name__)


class OutboxWorker:
    """Daemon thread that calls ``Outbox.flush`` every ``interval`` seconds."""

    def __init__(self, outbox: Outbox, interval: float = 30.0, batch_size: int = 50) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.outbox = outbox
        self.interval = interval
        self.batch_size = batch_size
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread (no-op if already running)."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="outbox-worker", daemon=True)
        self._thread.start()
        logger.info("Outbox worker started (interval=%ss)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the worker to stop and wait for it to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Outbox worker stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.outbox.flush(limit=self.batch_size)
            except Exception as e:  # noqa: BLE001 - keep the worker alive
                logger.exception("Outbox flush failed: %s", e)
            self._stop.wait(self.interval)
