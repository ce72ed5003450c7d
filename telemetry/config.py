"""Configuration for the telemetry logger.

`LoggerConfig` centralizes tunable parameters (channel count, serial link,
autosave cadence, output location) so the CLI, scripts and tests share one
setup. `Settings` reads the same values from the environment.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

NUM_CHANNELS = 8
AUTOSAVE_INTERVAL_S = 60.0


@dataclass
class LoggerConfig:
    """Top-level configuration for acquisition, storage and export.

    Attributes:
        num_channels: Number of sensor channels. Fixed for the process lifetime.
        baud: Serial baud rate. Must match the firmware.
        read_timeout_s: Bounded read timeout on the device handle.
        read_chunk_bytes: Maximum bytes requested per read.
        autosave_interval_s: Seconds between automatic exports.
        output_dir: Directory that receives exported CSV files.
        file_prefix: Leading part of exported file names.
        demo_samples: Synthetic samples per channel to seed at start (0 = none).
    """

    # Channels
    num_channels: int = NUM_CHANNELS

    # Serial link
    baud: int = 9600
    read_timeout_s: float = 1.0
    read_chunk_bytes: int = 100

    # Export
    autosave_interval_s: float = AUTOSAVE_INTERVAL_S
    output_dir: Path = field(default_factory=lambda: Path("."))
    file_prefix: str = "data"

    # Demonstration data
    demo_samples: int = 0

    def __post_init__(self):
        if self.num_channels < 1:
            raise ValueError(f"num_channels must be positive, got {self.num_channels}")
        if self.autosave_interval_s <= 0:
            raise ValueError(f"autosave_interval_s must be positive, got {self.autosave_interval_s}")
        self.output_dir = Path(self.output_dir)


class Settings(BaseSettings):
    """Environment-driven settings (``TELEMETRY_*`` variables or a ``.env`` file)."""

    model_config = SettingsConfigDict(env_prefix="TELEMETRY_", env_file=".env", extra="ignore")

    num_channels: int = NUM_CHANNELS
    baud: int = 9600
    read_timeout_s: float = 1.0
    autosave_interval_s: float = AUTOSAVE_INTERVAL_S
    output_dir: Path = Path(".")
    file_prefix: str = "data"
    port: str = ""

    def to_config(self, **overrides) -> LoggerConfig:
        """Build a LoggerConfig, letting non-None overrides win over settings."""
        values = {
            "num_channels": self.num_channels,
            "baud": self.baud,
            "read_timeout_s": self.read_timeout_s,
            "autosave_interval_s": self.autosave_interval_s,
            "output_dir": self.output_dir,
            "file_prefix": self.file_prefix,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return LoggerConfig(**values)
