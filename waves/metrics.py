"""Frame and solver summary metrics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from waves.basin import BasinState
from waves.glyphs import GlyphFrame
from waves.raster import PixelBuffers


@dataclass(frozen=True)
class FrameMetrics:
    """Coverage and color-run summary of one encoded frame."""

    hit_pixels: int
    hit_fraction: float
    lit_cells: int
    run_count: int
    distinct_colors: int
    height_min: float
    height_max: float


@dataclass(frozen=True)
class BasinMetrics:
    max_abs_height: float
    mean_height: float
    time: float
    substeps: int


def frame_metrics(buffers: PixelBuffers, frame: GlyphFrame) -> FrameMetrics:
    """Summarize pixel coverage and run compression for a rendered frame."""

    inv_depth, _, heights = buffers.views()
    hit = inv_depth > 0.0
    hit_pixels = int(hit.sum())
    total = max(buffers.size, 1)
    if hit_pixels:
        height_min = float(heights[hit].min())
        height_max = float(heights[hit].max())
    else:
        height_min = height_max = 0.0

    colors = {run.color for runs in frame.runs for run in runs if run.color is not None}
    return FrameMetrics(
        hit_pixels=hit_pixels,
        hit_fraction=float(hit_pixels / total),
        lit_cells=int(np.count_nonzero(frame.glyphs)),
        run_count=sum(len(runs) for runs in frame.runs),
        distinct_colors=len(colors),
        height_min=height_min,
        height_max=height_max,
    )


def basin_metrics(state: BasinState) -> BasinMetrics:
    open_cells = ~state.solid
    heights = state.curr[open_cells]
    return BasinMetrics(
        max_abs_height=float(np.abs(heights).max()) if heights.size else 0.0,
        mean_height=float(heights.mean()) if heights.size else 0.0,
        time=float(state.time),
        substeps=state.substeps_taken,
    )
