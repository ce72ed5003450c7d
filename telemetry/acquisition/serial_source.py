"""Serial ingestion loop feeding the channel store.

The loop waits for the UI to publish a port name, opens the device, then
reads raw bytes, reassembles CR-terminated lines and hands each one to the
line protocol parser and on to ``ChannelStore.append``. It runs on its own
thread until the shared shutdown event is set.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import serial
import serial.tools.list_ports

from telemetry.acquisition.protocol import DataSample, LineProtocolParser
from telemetry.errors import DeviceOpenError, ProtocolParseError
from telemetry.store import ChannelStore

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r"
READ_ERROR_PAUSE_S = 0.1
MAX_LINE_LENGTH = 1024


@dataclass
class SerialConfig:
    """Serial connection configuration.

    Attributes:
        baud: Baud rate. Must match the firmware (default 9600).
        timeout: Read timeout in seconds; keeps the loop responsive to shutdown.
        chunk_size: Maximum bytes requested per read.
    """
    baud: int = 9600
    timeout: float = 1.0
    chunk_size: int = 100


class IngestionState(Enum):
    AWAITING_PORT = "awaiting_port"
    CONNECTED = "connected"
    STREAMING = "streaming"
    STOPPED = "stopped"
    FAILED = "failed"


def available_ports() -> List[str]:
    """Device names of the serial ports present on this machine."""
    return [p.device for p in serial.tools.list_ports.comports()]


class PortSelection:
    """Externally-writable selected-port value with a blocking wait.

    The UI calls ``publish``; the ingestion loop blocks in ``wait`` and wakes
    as soon as a non-empty name is published (or ``close`` is called).
    """

    def __init__(self, port: str = ""):
        self._port = port
        self._closed = False
        self._cond = threading.Condition()

    @property
    def current(self) -> str:
        with self._cond:
            return self._port

    def publish(self, port: str) -> None:
        with self._cond:
            self._port = port
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> Optional[str]:
        """Block until a port is published. Returns None on timeout or close."""
        with self._cond:
            self._cond.wait_for(lambda: self._port or self._closed, timeout=timeout)
            return self._port or None


SerialFactory = Callable[..., "serial.Serial"]


class SerialIngestionLoop:
    """Reads the device and appends every valid data line to the store.

    Args:
        store: Destination store.
        parser: Line parser bound to the store's channel count.
        selection: Port handoff shared with the UI.
        config: Serial link settings.
        stop_event: Shutdown signal shared with the other background loops.
        serial_factory: Opens the device; defaults to ``serial.Serial``.
    """

    def __init__(
        self,
        store: ChannelStore,
        parser: LineProtocolParser,
        selection: PortSelection,
        config: SerialConfig | None = None,
        stop_event: threading.Event | None = None,
        serial_factory: SerialFactory | None = None,
    ):
        self.store = store
        self.parser = parser
        self.selection = selection
        self.config = config or SerialConfig()
        self.stop_event = stop_event or threading.Event()
        self.serial_factory = serial_factory or serial.Serial
        self.state = IngestionState.AWAITING_PORT
        self.error: Optional[Exception] = None

        self.lines_ingested = 0
        self.lines_rejected = 0
        self.directives_seen = 0

        self._buffer = ""
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Thread control
    # ------------------------------------------------------------------

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run, name="serial-ingestion", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self.stop_event.set()
        self.selection.close()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Line handling
    # ------------------------------------------------------------------

    def handle_line(self, line: str) -> bool:
        """Parse one complete line and append it if it carries data.

        Returns True when the store grew. Malformed lines are logged and dropped.
        """
        line = line.strip()
        if not line:
            return False
        try:
            result = self.parser.parse(line)
        except ProtocolParseError as e:
            self.lines_rejected += 1
            logger.warning("Dropped malformed line: %s", e)
            return False
        if not isinstance(result, DataSample):
            self.directives_seen += 1
            return False
        self.store.append(result.timestamp, result.readings)
        self.lines_ingested += 1
        return True

    def feed(self, chunk: bytes) -> int:
        """Add raw bytes to the reassembly buffer and dispatch complete lines.

        Returns the number of lines appended to the store. A partial line
        longer than ``MAX_LINE_LENGTH`` is dropped and counted as rejected.
        """
        self._buffer += chunk.decode("utf-8", errors="replace")
        *lines, self._buffer = self._buffer.split(LINE_TERMINATOR)
        appended = sum(self.handle_line(line) for line in lines)
        if len(self._buffer) > MAX_LINE_LENGTH:
            self.lines_rejected += 1
            logger.warning("Dropped %d characters with no line terminator", len(self._buffer))
            self._buffer = ""
        return appended

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def _await_port(self) -> Optional[str]:
        logger.info("Waiting for a serial port to be selected")
        while not self.stop_event.is_set():
            port = self.selection.wait(timeout=self.config.timeout)
            if port:
                return port
        return None

    def _open(self, port: str):
        try:
            return self.serial_factory(port, self.config.baud, timeout=self.config.timeout)
        except (serial.SerialException, OSError, ValueError) as e:
            raise DeviceOpenError(port, e) from e

    def run(self) -> None:
        """Handshake, connect and stream until the stop event is set."""
        port = self._await_port()
        if port is None:
            self.state = IngestionState.STOPPED
            return

        try:
            device = self._open(port)
        except DeviceOpenError as e:
            self.error = e
            self.state = IngestionState.FAILED
            logger.error("%s", e)
            return

        self.state = IngestionState.CONNECTED
        logger.info("Connected to %s at %d baud", port, self.config.baud)
        try:
            self._stream(device)
        finally:
            try:
                device.close()
            except (serial.SerialException, OSError) as e:
                logger.warning("Error closing %s: %s", port, e)
            self.state = IngestionState.STOPPED
            logger.info("Ingestion stopped after %d lines", self.lines_ingested)

    def _stream(self, device) -> None:
        self.state = IngestionState.STREAMING
        while not self.stop_event.is_set():
            try:
                chunk = device.read(self.config.chunk_size)
            except (serial.SerialException, OSError) as e:
                logger.error("Error reading from serial port: %s", e)
                self.stop_event.wait(READ_ERROR_PAUSE_S)
                continue
            if not chunk:
                # read timeout
                continue
            self.feed(chunk)
