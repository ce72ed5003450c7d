import threading

import pytest

from telemetry.acquisition.serial_source import IngestionState
from telemetry.app import TelemetryLogger
from telemetry.config import LoggerConfig, Settings
from telemetry.io.export import read_export


class _Device:
    def __init__(self, lines):
        self.data = list(lines)
        self.done = threading.Event()

    def read(self, size):
        if self.data:
            return self.data.pop(0)
        self.done.set()
        return b""

    def close(self):
        pass


def test_end_to_end_ingest_and_save(tmp_path):
    device = _Device([b"100,20.0C,21.0C\r", b"#hello\r", b"200,,22.5C\r"])
    directives = []
    config = LoggerConfig(num_channels=2, output_dir=tmp_path, autosave_interval_s=3600, read_timeout_s=0.05)
    app = TelemetryLogger(config, serial_factory=lambda *a, **kw: device, on_directive=directives.append)
    app.start()
    app.select_port("/dev/ttyFAKE")
    assert device.done.wait(5)
    app.stop(timeout=5)

    assert app.ingestion.state is IngestionState.STOPPED
    assert [d.payload for d in directives] == ["hello"]
    rows = read_export(app.save_now())
    assert [(r.timestamp, r.readings) for r in rows] == [(100, (20.0, 21.0)), (200, (None, 22.5))]


def test_demo_seeding_and_background_save(tmp_path):
    app = TelemetryLogger(LoggerConfig(num_channels=3, demo_samples=100, output_dir=tmp_path))
    assert len(app.store) == 100
    app.save_in_background().join(timeout=5)
    exports = list(tmp_path.glob("data *.csv"))
    assert len(exports) == 1
    assert len(read_export(exports[0])) == 100


def test_config_validation():
    with pytest.raises(ValueError):
        LoggerConfig(num_channels=0)
    with pytest.raises(ValueError):
        LoggerConfig(autosave_interval_s=0)


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TELEMETRY_NUM_CHANNELS", "4")
    monkeypatch.setenv("TELEMETRY_AUTOSAVE_INTERVAL_S", "15")
    monkeypatch.setenv("TELEMETRY_OUTPUT_DIR", str(tmp_path / "out"))
    settings = Settings()
    config = settings.to_config(baud=115200, autosave_interval_s=None)
    assert config.num_channels == 4
    assert config.autosave_interval_s == 15.0
    assert config.baud == 115200
    assert config.output_dir == tmp_path / "out"
    assert config.demo_samples == 0
