import threading

import numpy as np
import pytest

from telemetry.snapshot import SnapshotReader, decimate, decimation_stride
from telemetry.store import ChannelStore, Sample


def _samples(n):
    return [Sample(i, float(i)) for i in range(n)]


def test_ten_thousand_to_width_hundred():
    out = decimate(_samples(10_000), width=100)
    assert decimation_stride(10_000, 100) == 100
    assert out.shape == (100, 2)
    assert out[0, 0] == 0 and out[1, 0] == 100


def test_small_stride_returns_all_points():
    samples = _samples(140)
    out = decimate(samples, width=100)  # stride round(1.4) = 1
    assert out.shape == (140, 2)
    np.testing.assert_array_equal(out[:, 0], np.arange(140))


def test_stride_rounds_half_up():
    assert decimation_stride(150, 100) == 2
    assert decimation_stride(149, 100) == 1
    assert decimation_stride(0, 100) == 0


def test_none_readings_dropped_before_decimation():
    samples = [Sample(0, 1.0), Sample(1, None), Sample(2, 3.0)]
    out = decimate(samples, width=10)
    np.testing.assert_array_equal(out, [[0, 1.0], [2, 3.0]])


def test_output_bounded_and_ordered():
    samples = _samples(1234)
    for width in (1, 7, 100, 617, 5000):
        out = decimate(samples, width)
        assert len(out) <= len(samples)
        assert np.all(np.diff(out[:, 0]) > 0)


def test_keep_last_appends_final_point():
    out = decimate(_samples(1050), width=100, keep_last=True)  # stride 11
    assert out[-1, 0] == 1049
    assert len(decimate(_samples(1050), width=100)) == len(out) - 1


def test_empty_series():
    assert decimate([], width=100).shape == (0, 2)


def test_invalid_width():
    with pytest.raises(ValueError):
        decimate(_samples(3), width=0)


def test_render_view_respects_enabled_flag():
    store = ChannelStore(2)
    for i in range(10):
        store.append(i, (float(i), None))
    store.set_enabled(1, False)

    views = SnapshotReader(store).render_view(width=100)
    assert [v.index for v in views] == [0, 1]
    assert views[0].points.shape == (10, 2)
    assert views[0].latest == Sample(9, 9.0)
    assert views[1].enabled is False
    assert views[1].points.shape == (0, 2)
    assert views[1].latest == Sample(9, None)


def test_channel_points_does_not_mutate_store():
    store = ChannelStore(1)
    for i in range(1000):
        store.append(i, (float(i),))
    pts = SnapshotReader(store).channel_points(0, width=10)
    assert len(pts) == 10
    assert len(store.series(0)) == 1000


def test_render_view_concurrent_with_display_edits():
    store = ChannelStore(4)
    for i in range(2000):
        store.append(i, (float(i), None, 1.0, 2.0))
    done = []

    def edit():
        for n in range(200):
            store.set_enabled(n % 4, n % 2 == 0)
            store.set_colour(n % 4, "#00ff00")
            store.latest()
        done.append("edit")

    def render():
        for _ in range(50):
            SnapshotReader(store).render_view(100)
        done.append("render")

    threads = [threading.Thread(target=edit, daemon=True), threading.Thread(target=render, daemon=True)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert sorted(done) == ["edit", "render"]
