"""Periodic export on a background thread."""
from __future__ import annotations
import logging
import threading
from typing import Optional

from telemetry.errors import ExportError
from telemetry.io.export import CsvExporter
from telemetry.store import ChannelStore

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """Exports ``store`` every ``interval`` seconds until ``stop_event`` is set.

    A tick that finds an export still running is skipped. Export failures are
    logged and never end the thread.
    """

    def __init__(
        self,
        exporter: CsvExporter,
        store: ChannelStore,
        interval: float = 60.0,
        stop_event: threading.Event | None = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.exporter = exporter
        self.store = store
        self.interval = float(interval)
        self.stop_event = stop_event or threading.Event()
        self.saves = 0
        self.skipped = 0
        self.failures = 0
        self._thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run, name="autosave", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def tick(self) -> None:
        """Run one autosave attempt."""
        logger.info("Autosaving data...")
        try:
            path = self.exporter.try_export(self.store)
        except ExportError as e:
            self.failures += 1
            logger.error("Autosave failed: %s", e)
            return
        if path is None:
            self.skipped += 1
            logger.warning("Autosave skipped: previous export still running")
        else:
            self.saves += 1

    def run(self) -> None:
        while not self.stop_event.wait(self.interval):
            self.tick()
