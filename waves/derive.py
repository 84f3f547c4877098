"""Derived raster and color products from rendered frames."""

from __future__ import annotations

from matplotlib.colors import hsv_to_rgb
import numpy as np

from waves.glyphs import GlyphFrame
from waves.raster import PixelBuffers


def luminance_preview_u8(buffers: PixelBuffers) -> np.ndarray:
    """Encode the luminance buffer as 8-bit grayscale; un-hit pixels stay black."""

    _, luminance, _ = buffers.views()
    norm = np.clip(np.nan_to_num(luminance.astype(np.float32), nan=0.0), 0.0, 1.0)
    return np.round(norm * 255.0).astype(np.uint8)


def height_preview_u8(buffers: PixelBuffers, *, amplitude: float) -> np.ndarray:
    """Map surface heights in [-amplitude, amplitude] into 8-bit [0, 255]."""

    inv_depth, _, heights = buffers.views()
    encoded = signed_preview_u8(heights, clip=amplitude)
    encoded[inv_depth <= 0.0] = 0
    return encoded


def inverse_depth_preview_u8(
    buffers: PixelBuffers,
    *,
    robust_percentiles: tuple[float, float] = (1.0, 99.0),
) -> np.ndarray:
    """Map inverse depth of hit pixels to 8-bit preview grayscale."""

    inv_depth, _, _ = buffers.views()
    out = np.zeros(inv_depth.shape, dtype=np.uint8)
    hit = inv_depth > 0.0
    if not np.any(hit):
        return out
    lo, hi = np.percentile(inv_depth[hit], robust_percentiles)
    scale = max(float(hi - lo), 1e-6)
    norm = np.clip((inv_depth - lo) / scale, 0.0, 1.0)
    out[hit] = np.round(norm[hit] * 254.0 + 1.0).astype(np.uint8)
    return out


def signed_preview_u8(values: np.ndarray, *, clip: float = 1.0) -> np.ndarray:
    """Map signed float values in [-clip, clip] into 8-bit [0, 255]."""

    normalized = np.clip(values.astype(np.float32) / max(clip, 1e-6), -1.0, 1.0)
    encoded = (normalized * 0.5) + 0.5
    return np.round(encoded * 255.0).astype(np.uint8)


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """Convert HSL (degrees, percent, percent) to uint8 RGB triples."""

    h = np.mod(np.asarray(hue, dtype=np.float64), 360.0) / 360.0
    s = np.clip(np.asarray(saturation, dtype=np.float64) / 100.0, 0.0, 1.0)
    light = np.clip(np.asarray(lightness, dtype=np.float64) / 100.0, 0.0, 1.0)
    h, s, light = np.broadcast_arrays(h, s, light)

    value = light + s * np.minimum(light, 1.0 - light)
    safe_value = np.where(value > 0.0, value, 1.0)
    sat_v = np.where(value > 0.0, 2.0 * (1.0 - light / safe_value), 0.0)
    hsv = np.stack((h, np.clip(sat_v, 0.0, 1.0), value), axis=-1)
    return np.round(hsv_to_rgb(hsv) * 255.0).astype(np.uint8)


def glyph_colors_rgb(frame: GlyphFrame, *, default: tuple[int, int, int] = (245, 245, 247)) -> np.ndarray:
    """Per-cell RGB of a glyph frame; uncolored cells get `default`."""

    out = np.empty((frame.rows, frame.cols, 3), dtype=np.uint8)
    out[...] = np.asarray(default, dtype=np.uint8)
    if not frame.colored:
        return out
    has_color = frame.hues >= 0
    if np.any(has_color):
        out[has_color] = hsl_to_rgb(
            frame.hues[has_color],
            np.full(int(has_color.sum()), frame.saturation),
            frame.lightness[has_color],
        )
    return out
