"""Running logger: store, ingestion, autosave and manual export wired together."""
from __future__ import annotations
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from telemetry.acquisition.protocol import ControlDirective, LineProtocolParser
from telemetry.acquisition.serial_source import PortSelection, SerialConfig, SerialIngestionLoop
from telemetry.config import LoggerConfig
from telemetry.errors import ExportError
from telemetry.io.autosave import AutosaveScheduler
from telemetry.io.export import CsvExporter
from telemetry.snapshot import SnapshotReader
from telemetry.store import ChannelStore, seed_demo_data

logger = logging.getLogger(__name__)


class TelemetryLogger:
    """Owns the shared store and the background loops that touch it.

    Args:
        config: Logger configuration.
        serial_factory: Optional device opener passed to the ingestion loop.
        on_directive: Optional handler for control lines from the device.
    """

    def __init__(
        self,
        config: LoggerConfig | None = None,
        serial_factory=None,
        on_directive: Callable[[ControlDirective], None] | None = None,
    ):
        self.config = config or LoggerConfig()
        self.stop_event = threading.Event()
        self.store = ChannelStore(self.config.num_channels)
        if self.config.demo_samples:
            seed_demo_data(self.store, self.config.demo_samples)
            logger.info("Seeded %d demo samples per channel", self.config.demo_samples)

        self.selection = PortSelection()
        self.parser = LineProtocolParser(self.config.num_channels, on_directive=on_directive)
        self.ingestion = SerialIngestionLoop(
            self.store,
            self.parser,
            self.selection,
            config=SerialConfig(
                baud=self.config.baud,
                timeout=self.config.read_timeout_s,
                chunk_size=self.config.read_chunk_bytes,
            ),
            stop_event=self.stop_event,
            serial_factory=serial_factory,
        )
        self.exporter = CsvExporter(directory=self.config.output_dir, prefix=self.config.file_prefix)
        self.autosave = AutosaveScheduler(
            self.exporter, self.store, interval=self.config.autosave_interval_s, stop_event=self.stop_event,
        )
        self.snapshots = SnapshotReader(self.store)

    def start(self) -> None:
        self.ingestion.start()
        self.autosave.start()
        logger.info("Logger started (%d channels, autosave every %.0f s)",
                    self.config.num_channels, self.config.autosave_interval_s)

    def select_port(self, port: str) -> None:
        """Publish the port chosen by the user; wakes the ingestion handshake."""
        logger.info("Selected serial port: %s", port)
        self.selection.publish(port)

    def save_now(self) -> Path:
        """Export immediately. Raises ExportError on failure."""
        return self.exporter.export(self.store)

    def save_in_background(self) -> threading.Thread:
        """Export on a worker thread; failures are logged."""
        def _save():
            try:
                self.save_now()
            except ExportError as e:
                logger.error("Manual save failed: %s", e)

        thread = threading.Thread(target=_save, name="manual-save", daemon=True)
        thread.start()
        return thread

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """Signal both background loops and wait for them to exit."""
        self.stop_event.set()
        self.ingestion.stop(timeout=timeout)
        self.autosave.stop(timeout=timeout)
