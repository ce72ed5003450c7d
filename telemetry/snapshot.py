"""Render-ready views of the store.

A renderer only needs about one point per horizontal pixel, so long series
are decimated before they are handed over. Decimation is a fixed stride over
the points that carry a reading:

    stride = round(n / width)

With ``stride < 2`` every point is returned unchanged; otherwise every
stride-th point starting from the first. The final point is only guaranteed
when ``keep_last`` is requested.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from telemetry.store import ChannelStore, Sample


def decimation_stride(n: int, width: int) -> int:
    """Round-half-up of n / width; 0 for an empty series."""
    if width <= 0:
        raise ValueError(f"width must be positive, got {width}")
    return int(n / width + 0.5)


def decimate(samples: Sequence[Sample], width: int, keep_last: bool = False) -> np.ndarray:
    """Reduce a channel's samples to at most about ``width`` plot points.

    Args:
        samples: Channel samples in ingestion order.
        width: Target output width (e.g. available pixels).
        keep_last: Append the final point when the stride skipped it.
    Returns:
        Float array of shape (k, 2) holding (timestamp, reading) rows.
    """
    points = [(s.timestamp, s.reading) for s in samples if s.reading is not None]
    stride = decimation_stride(len(points), width)
    if stride >= 2:
        last = points[-1]
        points = points[::stride]
        if keep_last and points[-1] is not last:
            points.append(last)
    return np.asarray(points, dtype=float).reshape(-1, 2)


@dataclass
class ChannelView:
    """Everything a renderer needs for one channel."""

    index: int
    enabled: bool
    colour: str
    latest: Optional[Sample]
    points: np.ndarray


class SnapshotReader:
    """Produces decimated, size-bounded views without mutating the store."""

    def __init__(self, store: ChannelStore, keep_last: bool = False):
        self.store = store
        self.keep_last = keep_last

    def channel_points(self, index: int, width: int) -> np.ndarray:
        return decimate(self.store.series(index), width, keep_last=self.keep_last)

    def render_view(self, width: int) -> List[ChannelView]:
        """One view per channel; disabled channels get an empty point array."""
        series, attrs = self.store.snapshot_with_display()
        views = []
        for i, (samples, attr) in enumerate(zip(series, attrs)):
            points = decimate(samples, width, keep_last=self.keep_last) if attr.enabled else np.empty((0, 2))
            views.append(ChannelView(
                index=i,
                enabled=attr.enabled,
                colour=attr.colour,
                latest=samples[-1] if samples else None,
                points=points,
            ))
        return views
