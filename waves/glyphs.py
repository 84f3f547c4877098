"""Braille glyph encoding with quantized color runs."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from waves.config import ColorMode, GlyphConfig, WaveConfig
from waves.raster import PixelBuffers
from waves.tsunami import MIN_AMPLITUDE

CELL_WIDTH = 2
CELL_HEIGHT = 4

# Nine density steps from empty to all eight dots.
BRAILLE_PATTERNS = (0x2800, 0x2801, 0x2821, 0x2825, 0x282D, 0x282F, 0x286F, 0x28EF, 0x28FF)
GLYPHS = tuple(chr(code) for code in BRAILLE_PATTERNS)
BLANK = GLYPHS[0]

_NO_COLOR = -1


@dataclass(frozen=True)
class CellColor:
    """Quantized HSL color shared by a run of cells."""

    hue: int
    saturation: int
    lightness: int

    def css(self) -> str:
        return f"hsl({self.hue} {self.saturation}% {self.lightness}%)"


@dataclass(frozen=True)
class GlyphRun:
    """Half-open column span [start, stop) of one row sharing a color."""

    start: int
    stop: int
    color: CellColor | None


@dataclass(frozen=True)
class GlyphFrame:
    """Encoded output grid.

    `glyphs` holds density indices (0 blank, 1-8 dots). `hues` and
    `lightness` are -1 for cells without a color.
    """

    glyphs: np.ndarray
    hues: np.ndarray
    lightness: np.ndarray
    saturation: int
    colored: bool
    runs: tuple[tuple[GlyphRun, ...], ...]

    @property
    def rows(self) -> int:
        return int(self.glyphs.shape[0])

    @property
    def cols(self) -> int:
        return int(self.glyphs.shape[1])

    def cell_color(self, row: int, col: int) -> CellColor | None:
        hue = int(self.hues[row, col])
        if not self.colored or hue == _NO_COLOR:
            return None
        return CellColor(hue, self.saturation, int(self.lightness[row, col]))

    def row_text(self, row: int) -> str:
        return "".join(GLYPHS[level] for level in self.glyphs[row])

    def lines(self) -> list[str]:
        return [self.row_text(row) for row in range(self.rows)]

    def to_text(self) -> str:
        return "".join(line + "\n" for line in self.lines())

    def is_blank(self) -> bool:
        return not bool(np.any(self.glyphs))


def encode_glyphs(
    buffers: PixelBuffers,
    cols: int,
    rows: int,
    config: WaveConfig,
    elapsed: float,
    glyph_config: GlyphConfig | None = None,
) -> GlyphFrame:
    """Average each 2x4 pixel block into one glyph and optional color.

    Only pixels that received a surface sample contribute to a cell's
    averages.
    """

    if cols <= 0 or rows <= 0:
        raise ValueError("cols and rows must be positive")
    if buffers.width != cols * CELL_WIDTH or buffers.height != rows * CELL_HEIGHT:
        raise ValueError("pixel buffers do not match the requested glyph grid")

    cfg = config.sanitized()
    gcfg = glyph_config or GlyphConfig()
    inv_depth, luminance, heights = buffers.views()

    hit = (inv_depth > 0.0).reshape(rows, CELL_HEIGHT, cols, CELL_WIDTH)
    lum_blocks = luminance.reshape(rows, CELL_HEIGHT, cols, CELL_WIDTH).astype(np.float64)
    height_blocks = heights.reshape(rows, CELL_HEIGHT, cols, CELL_WIDTH).astype(np.float64)

    count = hit.sum(axis=(1, 3))
    covered = count > 0
    safe_count = np.maximum(count, 1)
    avg_lum = np.where(hit, lum_blocks, 0.0).sum(axis=(1, 3)) / safe_count
    avg_lum = np.clip(np.nan_to_num(avg_lum, nan=0.0), 0.0, 1.0)

    top = gcfg.levels - 1
    levels = np.minimum(top, np.floor(avg_lum * gcfg.levels)).astype(np.uint8)
    glyphs = np.where(covered, levels, 0).astype(np.uint8)

    hues = np.full((rows, cols), _NO_COLOR, dtype=np.int16)
    lightness = np.full((rows, cols), _NO_COLOR, dtype=np.int16)
    colored = cfg.color_mode is not ColorMode.MONO
    if colored:
        amp = max(MIN_AMPLITUDE, cfg.amplitude)
        avg_height = np.where(hit, height_blocks, 0.0).sum(axis=(1, 3)) / safe_count
        hue_q, light_q = quantize_colors(
            avg_height,
            avg_lum,
            amplitude=amp,
            base_hue=cfg.hue,
            hue_range=cfg.hue_range,
            hue_shift=elapsed * gcfg.phase_hue_rate if cfg.color_mode is ColorMode.PHASE else 0.0,
            glyph_config=gcfg,
        )
        hues[covered] = hue_q[covered]
        lightness[covered] = light_q[covered]

    runs = tuple(_row_runs(hues[row], lightness[row], cfg.saturation, colored) for row in range(rows))
    return GlyphFrame(
        glyphs=glyphs,
        hues=hues,
        lightness=lightness,
        saturation=cfg.saturation,
        colored=colored,
        runs=runs,
    )


def quantize_colors(
    avg_height: np.ndarray,
    avg_lum: np.ndarray,
    *,
    amplitude: float,
    base_hue: float,
    hue_range: float,
    hue_shift: float,
    glyph_config: GlyphConfig | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Map height to hue and luminance to lightness on coarse step grids."""

    gcfg = glyph_config or GlyphConfig()
    height_norm = np.clip((avg_height + amplitude) / (2.0 * amplitude), 0.0, 1.0)
    hue = np.mod(base_hue + height_norm * hue_range + hue_shift, 360.0)
    light = np.clip(15.0 + avg_lum * 70.0, gcfg.min_lightness, gcfg.max_lightness)

    hue_q = np.mod(_round_half_up(hue / gcfg.hue_step) * gcfg.hue_step, 360.0)
    light_q = np.clip(_round_half_up(light / gcfg.lightness_step) * gcfg.lightness_step, 0.0, 100.0)
    return hue_q.astype(np.int16), light_q.astype(np.int16)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _row_runs(
    hues: np.ndarray,
    lightness: np.ndarray,
    saturation: int,
    colored: bool,
) -> tuple[GlyphRun, ...]:
    cols = int(hues.shape[0])
    if not colored:
        return (GlyphRun(0, cols, None),)

    keys = hues.astype(np.int32) * 1000 + lightness.astype(np.int32)
    starts = np.concatenate(([0], np.flatnonzero(keys[1:] != keys[:-1]) + 1))
    stops = np.concatenate((starts[1:], [cols]))

    runs: list[GlyphRun] = []
    for start, stop in zip(starts, stops):
        hue = int(hues[start])
        color = None if hue == _NO_COLOR else CellColor(hue, saturation, int(lightness[start]))
        runs.append(GlyphRun(int(start), int(stop), color))
    return tuple(runs)
