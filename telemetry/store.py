"""Thread-safe multi-channel sample store.

The store holds a fixed number of channels, each an append-only list of
``Sample``, plus a receipt log mapping each ingested line's device timestamp
to the local wall-clock time it arrived. One ingested line grows every
channel and the receipt log by exactly one entry, so all of them always have
the same length.

Locking
-------
Series data (channels + receipt log) and display attributes (enabled flag,
colour) are guarded by two separate locks. Only ``snapshot_with_display``
holds both, and it takes the data lock first. Display attributes change
through ``set_enabled``/``set_colour``, so no caller code runs under a store
lock. Readers copy under the lock and do any formatting after releasing it;
no lock is ever held across I/O or sleeping.
"""
from __future__ import annotations
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

DEFAULT_COLOURS = (
    "#ff0000",  # red
    "#00ff00",  # green
    "#0000ff",  # blue
    "#ffff00",  # yellow
    "#ff00ff",  # magenta
    "#00ffff",  # cyan
    "#ffffff",  # white
    "#a0a0a0",  # gray
)

RECEIPT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class Sample(NamedTuple):
    timestamp: int
    reading: Optional[float]


class ReceiptEntry(NamedTuple):
    timestamp: int
    received_at: str


class ExportRow(NamedTuple):
    """One ingested line as seen by the exporter."""

    timestamp: int
    received_at: str
    readings: Tuple[Optional[float], ...]


@dataclass
class DisplayAttributes:
    """Per-channel display state owned by the UI. The store gives it no meaning."""

    enabled: bool = True
    colour: str = "#ffffff"


@dataclass
class Channel:
    samples: List[Sample] = field(default_factory=list)
    display: DisplayAttributes = field(default_factory=DisplayAttributes)


def receipt_time(now: datetime | None = None) -> str:
    """Format a local wall-clock time with millisecond precision."""
    now = now or datetime.now()
    return now.strftime(RECEIPT_TIME_FORMAT)[:-3]


class ChannelStore:
    """Fixed-cardinality collection of channel series plus the receipt log.

    Args:
        num_channels: Number of channels. Never changes after construction.
    """

    def __init__(self, num_channels: int):
        if num_channels < 1:
            raise ValueError(f"num_channels must be positive, got {num_channels}")
        self.num_channels = int(num_channels)
        self._channels = [
            Channel(display=DisplayAttributes(colour=DEFAULT_COLOURS[i % len(DEFAULT_COLOURS)]))
            for i in range(self.num_channels)
        ]
        self._receipts: List[ReceiptEntry] = []
        self._data_lock = threading.Lock()
        self._display_lock = threading.Lock()

    def __len__(self) -> int:
        with self._data_lock:
            return len(self._receipts)

    def _check_width(self, readings: Sequence[Optional[float]]) -> None:
        if len(readings) != self.num_channels:
            raise ValueError(f"expected {self.num_channels} readings, got {len(readings)}")

    # ------------------------------------------------------------------
    # Writer side
    # ------------------------------------------------------------------

    def append(self, timestamp: int, readings: Sequence[Optional[float]], received_at: str | None = None) -> None:
        """Record one ingested line: one sample per channel and one receipt entry."""
        self._check_width(readings)
        received_at = received_at if received_at is not None else receipt_time()
        with self._data_lock:
            for channel, reading in zip(self._channels, readings):
                channel.samples.append(Sample(timestamp, reading))
            self._receipts.append(ReceiptEntry(timestamp, received_at))

    def extend(self, rows: Iterable[ExportRow]) -> int:
        """Bulk ``append`` under a single lock hold. Returns the number of rows added."""
        rows = list(rows)
        for row in rows:
            self._check_width(row.readings)
        with self._data_lock:
            for row in rows:
                for channel, reading in zip(self._channels, row.readings):
                    channel.samples.append(Sample(row.timestamp, reading))
                self._receipts.append(ReceiptEntry(row.timestamp, row.received_at))
        return len(rows)

    # ------------------------------------------------------------------
    # Reader side
    # ------------------------------------------------------------------

    def latest(self) -> List[Optional[Sample]]:
        """Last sample of every channel, or None for a channel with no data."""
        with self._data_lock:
            return [ch.samples[-1] if ch.samples else None for ch in self._channels]

    def series(self, index: int) -> List[Sample]:
        """Copy of one channel's samples."""
        with self._data_lock:
            return list(self._channels[index].samples)

    def export_view(self) -> List[ExportRow]:
        """Point-in-time snapshot of every ingested line, in ingestion order."""
        with self._data_lock:
            receipts = list(self._receipts)
            columns = [list(ch.samples) for ch in self._channels]
        return [
            ExportRow(entry.timestamp, entry.received_at, tuple(col[i].reading for col in columns))
            for i, entry in enumerate(receipts)
        ]

    def channel_lengths(self) -> Tuple[List[int], int]:
        """Per-channel sample counts and the receipt log length, read together."""
        with self._data_lock:
            return [len(ch.samples) for ch in self._channels], len(self._receipts)

    # ------------------------------------------------------------------
    # Display attributes
    # ------------------------------------------------------------------

    def set_enabled(self, index: int, enabled: bool) -> None:
        with self._display_lock:
            self._channels[index].display.enabled = bool(enabled)

    def set_colour(self, index: int, colour: str) -> None:
        with self._display_lock:
            self._channels[index].display.colour = colour

    def display_attributes(self) -> List[DisplayAttributes]:
        """Copies of every channel's display attributes."""
        with self._display_lock:
            return [replace(ch.display) for ch in self._channels]

    def snapshot_with_display(self) -> Tuple[List[List[Sample]], List[DisplayAttributes]]:
        """Series copies and display attributes taken together (data lock, then display lock)."""
        with self._data_lock:
            with self._display_lock:
                series = [list(ch.samples) for ch in self._channels]
                attrs = [replace(ch.display) for ch in self._channels]
        return series, attrs


def demo_rows(num_channels: int, count: int, received_at: str = "demo") -> List[ExportRow]:
    """Synthetic sine waves, one per channel, each offset by 20 radians."""
    t = np.arange(count)
    columns = [np.sin(t / 3000.0 + i * 20) for i in range(num_channels)]
    return [
        ExportRow(int(j), received_at, tuple(float(col[j]) for col in columns))
        for j in range(count)
    ]


def seed_demo_data(store: ChannelStore, count: int) -> int:
    """Pre-fill ``store`` with ``count`` synthetic samples per channel."""
    if count <= 0:
        return 0
    return store.extend(demo_rows(store.num_channels, count))
