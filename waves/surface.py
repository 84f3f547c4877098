"""Surface evaluation for the four wave models.

Every model answers the same question: given plan-view coordinates (u, v),
where does the displaced surface point sit in world space and how bright is
it once diffuse lighting and foam are applied. Luminance is always clipped to
[0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from waves.basin import BasinState
from waves.config import RendererConfig, WaveConfig, WaveModel
from waves.numerics import sample_world
from waves.spectrum import SpectrumComponent, orient_spectrum, trochoidal_component
from waves.tsunami import MIN_AMPLITUDE, TsunamiField

LIGHT_DIR = (0.3, 1.0, -0.4)
AMBIENT = 0.08
DIFFUSE_GAIN = 0.6

SPECTRUM_FOAM_GAIN = 0.35
TROCHOIDAL_FOAM_GAIN = 0.3
TSUNAMI_FOAM_GAIN = 0.38
BREAKING_JACOBIAN = 0.55


@dataclass(frozen=True)
class SurfaceSample:
    """Displaced world positions and shaded luminance for a batch of points."""

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    luminance: np.ndarray


@dataclass(frozen=True)
class Surface:
    """Everything one frame needs to evaluate its wave model."""

    model: WaveModel
    amplitude: float
    steepness: float
    phase_time: float
    components: tuple[SpectrumComponent, ...] = ()
    basin: BasinState | None = None
    tsunami: TsunamiField | None = None
    basin_slope_epsilon: float = 0.055
    tsunami_slope_epsilon: float = 0.05


def prepare_surface(
    config: WaveConfig,
    elapsed: float,
    *,
    spectrum: tuple[SpectrumComponent, ...] | None = None,
    basin: BasinState | None = None,
    renderer_config: RendererConfig | None = None,
) -> Surface:
    """Resolve the per-frame inputs of the configured model.

    `spectrum` is the un-rotated component set from `build_spectrum`; it is
    re-oriented by the current wind here.
    """

    cfg = config.sanitized()
    rcfg = renderer_config or RendererConfig()
    components: tuple[SpectrumComponent, ...] = ()
    tsunami = None

    if cfg.model is WaveModel.SPECTRUM and spectrum:
        components = orient_spectrum(spectrum, cfg.wind_dir)
    elif cfg.model is WaveModel.TROCHOIDAL:
        components = (trochoidal_component(cfg),)
    elif cfg.model is WaveModel.TSUNAMI:
        tsunami = TsunamiField.from_config(
            cfg,
            elapsed,
            half_extent=rcfg.camera.half_extent,
            tsunami_config=rcfg.tsunami,
        )

    return Surface(
        model=cfg.model,
        amplitude=max(MIN_AMPLITUDE, cfg.amplitude),
        steepness=cfg.steepness,
        phase_time=elapsed * cfg.speed,
        components=components,
        basin=basin if cfg.model is WaveModel.BASIN else None,
        tsunami=tsunami,
        basin_slope_epsilon=rcfg.basin.slope_epsilon,
        tsunami_slope_epsilon=rcfg.tsunami.slope_epsilon,
    )


def gerstner_surface(
    components: tuple[SpectrumComponent, ...],
    u: np.ndarray,
    v: np.ndarray,
    *,
    amplitude: float,
    steepness: float,
    phase_time: float,
    foam_gain: float,
) -> SurfaceSample:
    """Sum Gerstner components in order, tracking the analytic Jacobian.

    Foam appears where the horizontal Jacobian determinant drops below
    0.55 (the surface starts folding) and the point sits near a crest.
    """

    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    x = u.copy()
    z = v.copy()
    y = np.zeros_like(u)

    dx_dx0 = np.ones_like(u)
    dx_dz0 = np.zeros_like(u)
    dz_dx0 = np.zeros_like(u)
    dz_dz0 = np.ones_like(u)
    dy_dx0 = np.zeros_like(u)
    dy_dz0 = np.zeros_like(u)

    for wave in components:
        a = amplitude * wave.weight
        phase = (
            wave.wavenumber * (wave.dir_x * u + wave.dir_z * v)
            - wave.omega * phase_time
            + wave.phase
        )
        sin_p = np.sin(phase)
        cos_p = np.cos(phase)

        y += a * sin_p

        qa = (steepness * wave.weight) / wave.wavenumber
        x += wave.dir_x * qa * cos_p
        z += wave.dir_z * qa * cos_p

        common = qa * wave.wavenumber * sin_p
        dx_dx0 -= common * wave.dir_x * wave.dir_x
        dx_dz0 -= common * wave.dir_x * wave.dir_z
        dz_dx0 -= common * wave.dir_z * wave.dir_x
        dz_dz0 -= common * wave.dir_z * wave.dir_z

        dy_common = a * wave.wavenumber * cos_p
        dy_dx0 += dy_common * wave.dir_x
        dy_dz0 += dy_common * wave.dir_z

    jacobian = dx_dx0 * dz_dz0 - dx_dz0 * dz_dx0
    breakness = np.clip((BREAKING_JACOBIAN - jacobian) * 2.2, 0.0, 1.0)
    crestness = np.clip(y / (amplitude * 0.85), 0.0, 1.0)
    foam = breakness * crestness * foam_gain

    nx = dy_dz0 * dz_dx0 - dz_dz0 * dy_dx0
    ny = dz_dz0 * dx_dx0 - dx_dz0 * dz_dx0
    nz = dx_dz0 * dy_dx0 - dy_dz0 * dx_dx0
    luminance = _shade(nx, ny, nz, foam)
    return SurfaceSample(x=x, y=y, z=z, luminance=luminance)


def sample_trochoidal(surface: Surface, u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    return gerstner_surface(
        surface.components,
        u,
        v,
        amplitude=surface.amplitude,
        steepness=surface.steepness,
        phase_time=surface.phase_time,
        foam_gain=TROCHOIDAL_FOAM_GAIN,
    )


def sample_spectrum(surface: Surface, u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    if not surface.components:
        return flat_surface(u, v)
    return gerstner_surface(
        surface.components,
        u,
        v,
        amplitude=surface.amplitude,
        steepness=surface.steepness,
        phase_time=surface.phase_time,
        foam_gain=SPECTRUM_FOAM_GAIN,
    )


def sample_basin(surface: Surface, u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    """Bilinear lookup into the current basin grid with slope-based foam."""

    sim = surface.basin
    if sim is None:
        return flat_surface(u, v)

    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    eps = surface.basin_slope_epsilon
    amp = surface.amplitude
    y = sample_world(sim.curr, sim.half, u, v) * amp
    hu = sample_world(sim.curr, sim.half, u + eps, v) * amp
    hv = sample_world(sim.curr, sim.half, u, v + eps) * amp
    dx = (hu - y) / eps
    dz = (hv - y) / eps

    slope = np.hypot(dx, dz)
    foam = np.clip((slope - 0.75) * 0.28, 0.0, 0.32)
    luminance = _shade(-dx, np.ones_like(dx), -dz, foam)
    return SurfaceSample(x=u.copy(), y=y, z=v.copy(), luminance=luminance)


def sample_tsunami(surface: Surface, u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    field = surface.tsunami
    if field is None:
        return flat_surface(u, v)

    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    eps = surface.tsunami_slope_epsilon
    amp = surface.amplitude
    y = field.height(u, v)
    hu = field.height(u + eps, v)
    hv = field.height(u, v + eps)
    dx = (hu - y) / eps
    dz = (hv - y) / eps

    slope = np.hypot(dx, dz)
    crestness = np.clip((y - amp * 0.15) / (amp * 0.85), 0.0, 1.0)
    breaking = np.clip((slope - 0.85) * 0.75 + crestness * 1.15, 0.0, 1.0)
    foam = breaking * TSUNAMI_FOAM_GAIN
    luminance = _shade(-dx, np.ones_like(dx), -dz, foam)
    return SurfaceSample(x=u.copy(), y=y, z=v.copy(), luminance=luminance)


def flat_surface(u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    """Unlit rest plane used when a model has nothing to evaluate."""

    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    zeros = np.zeros_like(u)
    return SurfaceSample(x=u.copy(), y=zeros, z=v.copy(), luminance=zeros.copy())


_SAMPLERS: dict[WaveModel, Callable[[Surface, np.ndarray, np.ndarray], SurfaceSample]] = {
    WaveModel.TROCHOIDAL: sample_trochoidal,
    WaveModel.SPECTRUM: sample_spectrum,
    WaveModel.BASIN: sample_basin,
    WaveModel.TSUNAMI: sample_tsunami,
}


def sample_surface(surface: Surface, u: np.ndarray, v: np.ndarray) -> SurfaceSample:
    """Evaluate the frame's wave model at plan-view points."""

    return _SAMPLERS[surface.model](surface, u, v)


def _shade(nx: np.ndarray, ny: np.ndarray, nz: np.ndarray, foam: np.ndarray) -> np.ndarray:
    norm = np.sqrt(nx * nx + ny * ny + nz * nz)
    norm = np.where(norm > 0.0, norm, 1.0)
    lx, ly, lz = LIGHT_DIR
    diffuse = (nx * lx + ny * ly + nz * lz) / norm
    luminance = np.clip(diffuse * DIFFUSE_GAIN + foam + AMBIENT, 0.0, 1.0)
    return np.nan_to_num(luminance, nan=0.0, posinf=1.0, neginf=0.0)
