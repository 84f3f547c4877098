from __future__ import annotations

import numpy as np
import pytest

from waves.config import ColorMode, WaveConfig
from waves.glyphs import BLANK, GLYPHS, CellColor, GlyphRun, encode_glyphs
from waves.raster import PixelBuffers


def _buffers(cols: int, rows: int) -> PixelBuffers:
    buffers = PixelBuffers()
    buffers.ensure(cols * 2, rows * 4)
    buffers.clear()
    return buffers


def _fill_cell(buffers: PixelBuffers, col: int, row: int, *, lum: float, height: float = 0.0) -> None:
    inv_depth, luminance, heights = buffers.views()
    block = (slice(row * 4, row * 4 + 4), slice(col * 2, col * 2 + 2))
    inv_depth[block] = 0.2
    luminance[block] = lum
    heights[block] = height


def test_empty_buffers_encode_blank() -> None:
    frame = encode_glyphs(_buffers(3, 2), 3, 2, WaveConfig(), 0.0)

    assert frame.is_blank()
    assert frame.lines() == [BLANK * 3, BLANK * 3]
    assert frame.to_text() == (BLANK * 3 + "\n") * 2


def test_full_luminance_fills_every_dot() -> None:
    buffers = _buffers(2, 1)
    for col in range(2):
        _fill_cell(buffers, col, 0, lum=1.0)

    frame = encode_glyphs(buffers, 2, 1, WaveConfig(), 0.0)

    assert frame.row_text(0) == "⣿⣿"
    assert np.all(frame.glyphs == 8)


def test_only_hit_pixels_are_averaged() -> None:
    buffers = _buffers(1, 1)
    inv_depth, luminance, _ = buffers.views()
    inv_depth[0, 0] = 0.2
    luminance[0, 0] = 0.5

    frame = encode_glyphs(buffers, 1, 1, WaveConfig(), 0.0)

    assert frame.glyphs[0, 0] == 4
    assert frame.row_text(0) == GLYPHS[4]


def test_density_levels_are_monotonic() -> None:
    lums = np.linspace(0.0, 1.0, 10)
    buffers = _buffers(lums.size, 1)
    for col, lum in enumerate(lums):
        _fill_cell(buffers, col, 0, lum=float(lum))

    frame = encode_glyphs(buffers, lums.size, 1, WaveConfig(), 0.0)

    assert np.all(np.diff(frame.glyphs[0].astype(int)) >= 0)
    assert frame.glyphs[0, 0] == 0
    assert frame.glyphs[0, -1] == 8


def test_depth_color_quantization() -> None:
    buffers = _buffers(1, 1)
    _fill_cell(buffers, 0, 0, lum=0.5, height=0.0)
    cfg = WaveConfig(color_mode=ColorMode.DEPTH, amplitude=2.0)

    frame = encode_glyphs(buffers, 1, 1, cfg, 0.0)

    assert frame.cell_color(0, 0) == CellColor(264, 70, 48)
    assert frame.cell_color(0, 0).css() == "hsl(264 70% 48%)"


def test_phase_mode_drifts_hue_with_time() -> None:
    buffers = _buffers(1, 1)
    _fill_cell(buffers, 0, 0, lum=0.5, height=0.0)
    cfg = WaveConfig(color_mode=ColorMode.PHASE, amplitude=2.0)

    frame = encode_glyphs(buffers, 1, 1, cfg, 2.0)

    assert frame.cell_color(0, 0) == CellColor(312, 70, 48)


def test_lightness_follows_luminance() -> None:
    buffers = _buffers(2, 1)
    _fill_cell(buffers, 0, 0, lum=0.0)
    _fill_cell(buffers, 1, 0, lum=1.0)

    frame = encode_glyphs(buffers, 2, 1, WaveConfig(color_mode=ColorMode.DEPTH), 0.0)

    assert frame.cell_color(0, 0).lightness == 18
    assert frame.cell_color(0, 1).lightness == 84


def test_runs_merge_matching_neighbours() -> None:
    buffers = _buffers(4, 1)
    _fill_cell(buffers, 0, 0, lum=0.5)
    _fill_cell(buffers, 1, 0, lum=0.5)
    _fill_cell(buffers, 2, 0, lum=0.9)
    cfg = WaveConfig(color_mode=ColorMode.DEPTH, amplitude=2.0)

    frame = encode_glyphs(buffers, 4, 1, cfg, 0.0)

    (runs,) = frame.runs
    assert [(run.start, run.stop) for run in runs] == [(0, 2), (2, 3), (3, 4)]
    assert runs[0].color == CellColor(264, 70, 48)
    assert runs[2] == GlyphRun(3, 4, None)
    assert frame.cell_color(0, 3) is None


def test_mono_frame_has_one_uncolored_run_per_row() -> None:
    buffers = _buffers(3, 2)
    _fill_cell(buffers, 1, 1, lum=0.7)

    frame = encode_glyphs(buffers, 3, 2, WaveConfig(), 0.0)

    assert not frame.colored
    assert frame.runs == ((GlyphRun(0, 3, None),), (GlyphRun(0, 3, None),))
    assert frame.cell_color(1, 1) is None


def test_mismatched_grid_is_rejected() -> None:
    with pytest.raises(ValueError):
        encode_glyphs(_buffers(3, 2), 4, 2, WaveConfig(), 0.0)
    with pytest.raises(ValueError):
        encode_glyphs(_buffers(3, 2), 0, 2, WaveConfig(), 0.0)
