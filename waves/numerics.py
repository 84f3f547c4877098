"""Scalar and grid helpers shared by the wave models."""

from __future__ import annotations

import numpy as np


def clamp(value: float | np.ndarray, lo: float, hi: float) -> float | np.ndarray:
    """Clamp a scalar or array into [lo, hi]."""

    if isinstance(value, np.ndarray):
        return np.clip(value, lo, hi)
    return max(lo, min(hi, value))


def smoothstep(edge0: float, edge1: float, x: float | np.ndarray) -> float | np.ndarray:
    """Hermite step between two edges; 0 when the edges coincide."""

    if edge0 == edge1:
        return np.zeros_like(x) if isinstance(x, np.ndarray) else 0.0
    t = clamp((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def positive_mod(value: float | np.ndarray, period: float) -> float | np.ndarray:
    """Modulo that always lands in [0, period); 0 for a zero period."""

    if not period:
        return np.zeros_like(value) if isinstance(value, np.ndarray) else 0.0
    wrapped = np.mod(value, period)
    # np.mod can round a tiny negative remainder up to `period`
    wrapped = np.where(wrapped >= period, wrapped - period, wrapped)
    if isinstance(value, np.ndarray):
        return wrapped
    return float(wrapped)


def wrap_signed(value: float | np.ndarray, period: float) -> float | np.ndarray:
    """Wrap into [-period/2, period/2) so the result repeats every `period`."""

    half = period / 2.0
    return positive_mod(value + half, period) - half


def bilinear_sample(
    field: np.ndarray,
    sample_x: float | np.ndarray,
    sample_z: float | np.ndarray,
) -> float | np.ndarray:
    """Sample `field[z, x]` at fractional grid indices, clamped to the grid.

    Integer coordinates return the stored node value exactly.
    """

    if field.ndim != 2:
        raise ValueError("field must be a 2D array")
    rows, cols = field.shape
    fx = np.clip(np.asarray(sample_x, dtype=np.float64), 0.0, cols - 1)
    fz = np.clip(np.asarray(sample_z, dtype=np.float64), 0.0, rows - 1)

    x0 = np.floor(fx).astype(np.int64)
    z0 = np.floor(fz).astype(np.int64)
    x1 = np.minimum(x0 + 1, cols - 1)
    z1 = np.minimum(z0 + 1, rows - 1)

    tx = fx - x0
    tz = fz - z0

    g00 = field[z0, x0]
    g10 = field[z0, x1]
    g01 = field[z1, x0]
    g11 = field[z1, x1]

    top = g00 * (1.0 - tx) + g10 * tx
    bottom = g01 * (1.0 - tx) + g11 * tx
    return top * (1.0 - tz) + bottom * tz


def world_to_grid(coord: float | np.ndarray, half: float, n: int) -> np.ndarray:
    """Map a plan-view coordinate in [-half, half] onto grid index space."""

    return (np.asarray(coord, dtype=np.float64) + half) / (half * 2.0) * (n - 1)


def sample_world(
    field: np.ndarray,
    half: float,
    x: float | np.ndarray,
    z: float | np.ndarray,
) -> float | np.ndarray:
    """Bilinearly sample a square grid spanning [-half, half] at plan-view points.

    Points outside the grid read the nearest border value.
    """

    n = field.shape[0]
    fx = world_to_grid(x, half, n)
    fz = world_to_grid(z, half, n)
    return bilinear_sample(field, fx, fz)
