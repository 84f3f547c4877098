"""Seeded dispersive wave spectrum."""

from __future__ import annotations

from dataclasses import dataclass, replace
import math

import structlog

from waves.config import WaveConfig
from waves.rng import Mulberry32

logger = structlog.get_logger()

GRAVITY = 9.81


@dataclass(frozen=True)
class SpectrumComponent:
    """One Gerstner component; `dir_*` is the wind-rotated copy of `base_dir_*`."""

    wavelength: float
    wavenumber: float
    omega: float
    weight: float
    phase: float
    base_dir_x: float
    base_dir_z: float
    dir_x: float
    dir_z: float


SpectrumKey = tuple[int, int, float, float, float]


def spectrum_key(config: WaveConfig) -> SpectrumKey:
    """Inputs that change the spectral shape; wind direction is not one of them."""

    cfg = config.sanitized()
    return (cfg.seed, cfg.components, cfg.min_wavelength, cfg.max_wavelength, cfg.spread)


def deep_water_omega(wavenumber: float) -> float:
    return math.sqrt(GRAVITY * wavenumber)


def build_spectrum(config: WaveConfig) -> tuple[SpectrumComponent, ...]:
    """Draw a normalized set of components from the config seed.

    Components are returned un-rotated (wind at 0 degrees); use
    `orient_spectrum` to apply the current wind.
    """

    cfg = config.sanitized()
    count = cfg.components
    min_wl = cfg.min_wavelength
    max_wl = cfg.max_wavelength
    spread = math.radians(cfg.spread)
    rand = Mulberry32(cfg.seed)

    raw: list[SpectrumComponent] = []
    for _ in range(count):
        wavelength = min_wl * math.pow(max_wl / min_wl, rand.next())
        k = (math.pi * 2.0) / wavelength
        angle_offset = (rand.next() - 0.5) * spread * 2.0
        dir_x0 = math.cos(angle_offset)
        dir_z0 = math.sin(angle_offset)
        weight = (0.3 + 0.7 * rand.next()) * math.pow(wavelength / max_wl, 1.25)
        phase = rand.next() * math.pi * 2.0
        raw.append(
            SpectrumComponent(
                wavelength=wavelength,
                wavenumber=k,
                omega=deep_water_omega(k),
                weight=weight,
                phase=phase,
                base_dir_x=dir_x0,
                base_dir_z=dir_z0,
                dir_x=dir_x0,
                dir_z=dir_z0,
            )
        )

    total = 0.0
    for component in raw:
        total += component.weight
    norm = total or 1.0

    logger.debug("spectrum built", components=count, seed=cfg.seed, weight_total=total)
    return tuple(replace(component, weight=component.weight / norm) for component in raw)


def orient_spectrum(
    components: tuple[SpectrumComponent, ...],
    wind_dir_deg: float,
) -> tuple[SpectrumComponent, ...]:
    """Rotate every component's base direction by the wind angle."""

    wind = math.radians(wind_dir_deg % 360.0)
    c = math.cos(wind)
    s = math.sin(wind)
    return tuple(
        replace(
            component,
            dir_x=component.base_dir_x * c - component.base_dir_z * s,
            dir_z=component.base_dir_x * s + component.base_dir_z * c,
        )
        for component in components
    )


def trochoidal_component(config: WaveConfig) -> SpectrumComponent:
    """Single full-weight component described directly by wavelength and wind."""

    cfg = config.sanitized()
    k = (math.pi * 2.0) / cfg.wavelength
    wind = math.radians(cfg.wind_dir)
    dir_x = math.cos(wind)
    dir_z = math.sin(wind)
    return SpectrumComponent(
        wavelength=cfg.wavelength,
        wavenumber=k,
        omega=deep_water_omega(k),
        weight=1.0,
        phase=0.0,
        base_dir_x=1.0,
        base_dir_z=0.0,
        dir_x=dir_x,
        dir_z=dir_z,
    )
