"""CSV export of the channel store.

File layout::

    Time since start (ms),datetime of data,Sensor 1,...,Sensor N
    1000,2024-05-01 12:00:00.123,21.5,,22.0

One row per ingested line; an empty field is a missing reading. File names
embed the local time as ``YYYY-MM-DD HH-MM-SS`` so they sort chronologically.
"""
from __future__ import annotations
import csv
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from telemetry.errors import ExportError
from telemetry.store import ChannelStore, ExportRow

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "Time since start (ms)"
DATETIME_HEADER = "datetime of data"
FILENAME_TIME_FORMAT = "%Y-%m-%d %H-%M-%S"
MAX_NAME_ATTEMPTS = 1000


def sensor_headers(num_channels: int) -> List[str]:
    return [f"Sensor {i}" for i in range(1, num_channels + 1)]


def export_headers(num_channels: int) -> List[str]:
    return [TIMESTAMP_HEADER, DATETIME_HEADER, *sensor_headers(num_channels)]


def format_reading(reading: Optional[float]) -> str:
    """Shortest round-trip decimal text, never in exponent notation."""
    if reading is None:
        return ""
    return np.format_float_positional(float(reading), trim="0")


@dataclass
class CsvExporter:
    """Writes consistent snapshots of a store to timestamped CSV files.

    Attributes:
        directory: Destination directory (created on first export).
        prefix: Leading part of each file name.
    """
    directory: Path = field(default_factory=lambda: Path("."))
    prefix: str = "data"

    def __post_init__(self):
        self.directory = Path(self.directory)
        self._busy = threading.Lock()
        self.exports_written = 0
        self.last_path: Optional[Path] = None

    def _open_new(self, now: datetime):
        stamp = now.strftime(FILENAME_TIME_FORMAT)
        for n in range(1, MAX_NAME_ATTEMPTS + 1):
            suffix = "" if n == 1 else f" ({n})"
            path = self.directory / f"{self.prefix} {stamp}{suffix}.csv"
            try:
                return path, open(path, "x", newline="", encoding="utf-8")
            except FileExistsError:
                continue
        raise FileExistsError(f"no free export name for {stamp} in {self.directory}")

    def _write(self, rows: List[ExportRow], num_channels: int, now: datetime) -> Path:
        path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path, fh = self._open_new(now)
            with fh:
                writer = csv.writer(fh)
                writer.writerow(export_headers(num_channels))
                for row in rows:
                    writer.writerow([row.timestamp, row.received_at, *map(format_reading, row.readings)])
        except OSError as e:
            if path is not None:
                path.unlink(missing_ok=True)
            raise ExportError(path, e) from e
        return path

    def export(self, store: ChannelStore, now: datetime | None = None) -> Path:
        """Snapshot ``store`` and write it to a new file. Waits for a running export.

        Raises:
            ExportError: the file could not be created or written.
        """
        with self._busy:
            return self._export_locked(store, now)

    def try_export(self, store: ChannelStore, now: datetime | None = None) -> Optional[Path]:
        """Like ``export`` but returns None at once if another export is running."""
        if not self._busy.acquire(blocking=False):
            return None
        try:
            return self._export_locked(store, now)
        finally:
            self._busy.release()

    def _export_locked(self, store: ChannelStore, now: datetime | None) -> Path:
        rows = store.export_view()
        path = self._write(rows, store.num_channels, now or datetime.now())
        self.exports_written += 1
        self.last_path = path
        logger.info("Saved %d rows to %s", len(rows), path)
        return path


def _parse_field(text: str) -> Optional[float]:
    return float(text) if text else None


def read_export(path: Path) -> List[ExportRow]:
    """Read an export file back into rows; empty fields become None."""
    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.reader(fh)
        header = next(reader)
        if header[:2] != [TIMESTAMP_HEADER, DATETIME_HEADER]:
            raise ValueError(f"{path} is not a telemetry export (header {header[:2]!r})")
        return [
            ExportRow(int(rec[0]), rec[1], tuple(_parse_field(v) for v in rec[2:]))
            for rec in reader
            if rec
        ]


def load_export(path: Path) -> pd.DataFrame:
    """Load an export file as a DataFrame; missing readings are NaN."""
    return pd.read_csv(path, dtype={DATETIME_HEADER: str}, keep_default_na=False, na_values=[""])


def summarize_export(df: pd.DataFrame) -> pd.DataFrame:
    """Per-sensor count/min/max/mean of the readings in an export frame."""
    sensors = [c for c in df.columns if c.startswith("Sensor ")]
    data = df[sensors].apply(pd.to_numeric, errors="coerce")
    return pd.DataFrame({
        "count": data.count(),
        "min": data.min(),
        "max": data.max(),
        "mean": data.mean(),
    })
