"""Exception types raised by the telemetry logger."""
from __future__ import annotations
from pathlib import Path


class TelemetryError(Exception):
    """Base class for logger errors."""


class ProtocolParseError(TelemetryError):
    """An ingested line could not be decoded; the whole line is rejected."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class DeviceOpenError(TelemetryError):
    """The selected serial device could not be opened."""

    def __init__(self, port: str, cause: Exception):
        super().__init__(f"Failed to open serial port {port!r}: {cause}")
        self.port = port
        self.cause = cause


class ExportError(TelemetryError):
    """Creating or writing an export file failed."""

    def __init__(self, path: Path | None, cause: Exception):
        super().__init__(f"Export to {path} failed: {cause}")
        self.path = path
        self.cause = cause
