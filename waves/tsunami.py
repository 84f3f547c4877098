"""Procedural breaking tsunami front and its crest spray."""

from __future__ import annotations

from dataclasses import dataclass, replace
import math

import numpy as np

from waves.config import TsunamiConfig, WaveConfig
from waves.numerics import clamp, smoothstep, wrap_signed

MIN_AMPLITUDE = 0.001


@dataclass(frozen=True)
class TsunamiField:
    """Closed-form travelling front along the wind axis, re-entering periodically."""

    amplitude: float
    dir_x: float
    dir_z: float
    half: float
    period: float
    time: float
    center: float
    crest_width: float
    curl: float
    ripple: float
    baseline: float = 0.0

    @classmethod
    def from_config(
        cls,
        config: WaveConfig,
        elapsed: float,
        *,
        half_extent: float = 3.5,
        tsunami_config: TsunamiConfig | None = None,
    ) -> "TsunamiField":
        cfg = config.sanitized()
        tcfg = tsunami_config or TsunamiConfig()
        wind = math.radians(cfg.wind_dir)
        dir_x = math.cos(wind)
        dir_z = math.sin(wind)
        abs_sum = max(0.25, abs(dir_x) + abs(dir_z))
        period = 2.0 * half_extent * abs_sum
        time = elapsed * cfg.speed

        unbiased = cls(
            amplitude=max(MIN_AMPLITUDE, cfg.amplitude),
            dir_x=dir_x,
            dir_z=dir_z,
            half=half_extent,
            period=period,
            time=time,
            center=wrap_signed(0.55 - time * 1.35, period),
            crest_width=cfg.crest_width,
            curl=cfg.curl,
            ripple=cfg.ripple,
        )
        coords = np.asarray(tcfg.baseline_coords, dtype=np.float64)
        uu, vv = np.meshgrid(coords, coords, indexing="ij")
        baseline = float(np.mean(unbiased.raw_height(uu, vv)))
        return replace(unbiased, baseline=baseline)

    def raw_height(self, u, v):
        """Surface height before the rest-state baseline is removed."""

        amp = self.amplitude
        t = self.time
        s = self.dir_x * u + self.dir_z * v
        q = -self.dir_z * u + self.dir_x * v
        d = wrap_signed(s - self.center, self.period)

        cw = self.crest_width * 1.1
        crest = amp * np.exp(-(d * d) * cw)
        drawdown = -amp * 0.62 * np.exp(-((d + 1.45) * (d + 1.45)) * cw * 0.55)

        curl_factor = np.maximum(0.0, crest - amp * 0.52)
        curl_term = np.sin((s + t) * 2.6 + 0.5) * curl_factor * self.curl

        wake_gate = smoothstep(0.0, 2.8, d)
        wake_term = (
            np.sin(s * 1.55 + t * 2.0)
            * (0.22 + 0.08 * self.curl)
            * wake_gate
            * np.exp(-(d * d) * 0.22)
        )

        crest_mask = 1.0 - clamp(crest / (amp * 1.1), 0.0, 1.0)
        ripple_term = np.sin(q * 2.45 + t * 1.65) * self.ripple * crest_mask

        texture = (
            np.sin(u * 5.0 + v * 3.0 + t * 2.0)
            + np.sin(u * 7.0 - v * 4.0 + t * 2.8) * 0.6
        ) * 0.04

        return crest + drawdown + curl_term + wake_term + ripple_term + texture

    def height(self, u, v):
        return self.raw_height(u, v) - self.baseline


@dataclass(frozen=True)
class SprayParticle:
    index: int
    x: float
    y: float
    z: float
    visible: bool


def spray_particles(
    field: TsunamiField,
    elapsed: float,
    tsunami_config: TsunamiConfig | None = None,
) -> list[SprayParticle]:
    """Spray points riding the crest; `visible` is the temporal flicker gate."""

    tcfg = tsunami_config or TsunamiConfig()
    particles: list[SprayParticle] = []
    for i in range(tcfg.spray_count):
        q = math.sin(i * 1.31) * 3.1
        s = field.center + math.sin(i * 0.73 + field.time * 0.6) * 0.24
        sx = field.dir_x * s - field.dir_z * q + math.sin(i * 2.1) * 0.12
        sz = field.dir_z * s + field.dir_x * q + math.cos(i * 1.7) * 0.12
        crest = float(field.height(sx, sz))
        if crest <= field.amplitude * tcfg.spray_threshold:
            continue
        sy = crest + 0.25 + math.sin(field.time * 10.0 + i) * 0.22
        particles.append(
            SprayParticle(
                index=i,
                x=sx,
                y=sy,
                z=sz,
                visible=math.sin(elapsed * 10.0 + i * 0.7) > 0.0,
            )
        )
    return particles
