"""Damped leapfrog solver for the 2D wave equation in a shallow basin."""

from __future__ import annotations

from dataclasses import dataclass
import math

import numpy as np
from scipy.ndimage import correlate
import structlog

from waves.config import BasinConfig, BasinEdge, WaveConfig
from waves.numerics import clamp
from waves.rng import Mulberry32

logger = structlog.get_logger()

_CROSS_KERNEL = np.array(
    [
        [0.0, 1.0, 0.0],
        [1.0, 0.0, 1.0],
        [0.0, 1.0, 0.0],
    ],
    dtype=np.float32,
)
_DROP_KERNEL = np.array(
    [
        [0.22, 0.45, 0.22],
        [0.45, 1.00, 0.45],
        [0.22, 0.45, 0.22],
    ],
    dtype=np.float64,
)

BasinKey = tuple[int, float, str, int, str]


@dataclass
class BasinState:
    """Solver state owned by the caller and advanced in place between frames.

    `prev`, `curr` and `next` are rotated by reference after every sub-step.
    """

    key: BasinKey
    n: int
    half: float
    dx: float
    edge: BasinEdge
    prev: np.ndarray
    curr: np.ndarray
    next: np.ndarray
    wave_speed_sq: np.ndarray
    solid: np.ndarray
    closed_neighbors: np.ndarray
    paddle_profile: np.ndarray
    max_wave_speed: float
    rand: Mulberry32
    time: float = 0.0
    substeps_taken: int = 0


@dataclass(frozen=True)
class BasinForcing:
    """Wavemaker and raindrop strengths derived from the basin mode count."""

    drop_rate: float
    drop_magnitude: float
    paddle_magnitude: float

    @classmethod
    def from_config(cls, config: WaveConfig) -> "BasinForcing":
        forcing = clamp(config.sanitized().basin_modes / 48.0, 0.0, 1.0)
        return cls(
            drop_rate=1.5 + forcing * 10.5,
            drop_magnitude=0.6 + forcing * 1.8,
            paddle_magnitude=0.7 + forcing * 0.7,
        )


def basin_key(config: WaveConfig, basin_config: BasinConfig | None = None) -> BasinKey:
    """Derived identity of a basin; a different key requires a rebuild."""

    cfg = config.sanitized()
    bcfg = basin_config or BasinConfig()
    return (
        bcfg.resolution,
        bcfg.half_extent,
        cfg.basin_edge.value,
        cfg.seed,
        f"{cfg.basin_depth:.2f}",
    )


def wave_speed_squared(n: int, half: float, depth: float, basin_config: BasinConfig) -> np.ndarray:
    """Static c^2 field: a radial bowl carved by two Gaussian sandbars."""

    length = half * 2.0
    coords = (np.arange(n, dtype=np.float64) / (n - 1) - 0.5) * length
    z, x = np.meshgrid(coords, coords, indexing="ij")

    r = np.clip(np.hypot(x, z) / half, 0.0, 1.0)
    bowl = 0.35 + 0.65 * (1.0 - r * r)
    sandbar = (
        1.0
        - 0.12 * np.exp(-((x + 1.1) * (x + 1.1) + (z - 0.9) * (z - 0.9)) / 0.8)
        - 0.09 * np.exp(-((x - 1.4) * (x - 1.4) + (z + 1.0) * (z + 1.0)) / 1.1)
    )
    return np.clip(
        depth * bowl * sandbar,
        basin_config.min_wave_speed_sq,
        basin_config.max_wave_speed_sq,
    )


def create_basin(config: WaveConfig, basin_config: BasinConfig | None = None) -> BasinState:
    """Build a fresh basin at rest with a few seeded initial disturbances."""

    cfg = config.sanitized()
    bcfg = basin_config or BasinConfig()
    n = bcfg.resolution
    if n < 5:
        raise ValueError("basin resolution must be >= 5")

    half = bcfg.half_extent
    dx = (half * 2.0) / (n - 1)
    rand = Mulberry32(cfg.seed)

    s = np.arange(n, dtype=np.float64) / (n - 1)
    paddle_profile = np.square(np.sin(np.pi * s))

    c2 = wave_speed_squared(n, half, cfg.basin_depth, bcfg)
    max_c = float(np.sqrt(c2.max()))

    solid = np.zeros((n, n), dtype=bool)
    open_cells = (~solid).astype(np.float32)
    closed = 4.0 - correlate(open_cells, _CROSS_KERNEL, mode="constant", cval=0.0)

    prev = np.zeros((n, n), dtype=np.float32)
    curr = np.zeros((n, n), dtype=np.float32)
    nxt = np.zeros((n, n), dtype=np.float32)

    for _ in range(bcfg.seed_impulses):
        ri, rj, rm = rand.draws(3)
        i0 = int(math.floor(n * (0.25 + 0.5 * ri)))
        j0 = int(math.floor(n * (0.25 + 0.5 * rj)))
        curr[j0, i0] = 0.5 * (0.4 + 0.6 * rm)
        prev[j0, i0] = -curr[j0, i0] * 0.6

    state = BasinState(
        key=basin_key(cfg, bcfg),
        n=n,
        half=half,
        dx=dx,
        edge=cfg.basin_edge,
        prev=prev,
        curr=curr,
        next=nxt,
        wave_speed_sq=c2.astype(np.float32),
        solid=solid,
        closed_neighbors=closed.astype(np.float32),
        paddle_profile=paddle_profile,
        max_wave_speed=max_c,
        rand=rand,
    )
    logger.debug("basin created", key=state.key, max_wave_speed=max_c)
    return state


def ensure_basin(
    state: BasinState | None,
    config: WaveConfig,
    basin_config: BasinConfig | None = None,
) -> BasinState:
    """Return `state` if its key still matches `config`, else a rebuilt basin."""

    key = basin_key(config, basin_config)
    if state is not None and state.key == key:
        return state
    if state is not None:
        logger.debug("basin key changed", old_key=state.key, new_key=key)
    return create_basin(config, basin_config)


def plan_substeps(
    state: BasinState,
    config: WaveConfig,
    basin_config: BasinConfig | None = None,
) -> tuple[int, float]:
    """Split one frame into CFL-stable sub-steps; returns (count, dt)."""

    bcfg = basin_config or BasinConfig()
    dt_wanted = bcfg.frame_dt * config.sanitized().speed
    dt_max = (bcfg.cfl_factor * state.dx) / max(0.01, state.max_wave_speed)
    count = max(1, min(bcfg.max_substeps, math.ceil(dt_wanted / dt_max)))
    return count, dt_wanted / count


def step_basin(
    state: BasinState,
    dt: float,
    forcing: BasinForcing,
    basin_config: BasinConfig | None = None,
) -> None:
    """Advance the basin by one leapfrog sub-step of length `dt`."""

    bcfg = basin_config or BasinConfig()
    state.time += dt
    dt2 = dt * dt
    gdt = bcfg.damping * dt
    factor = dt2 / (state.dx * state.dx)
    fixed = state.edge is BasinEdge.FIXED

    curr = state.curr
    open_curr = np.where(state.solid, np.float32(0.0), curr)
    neighbor_sum = correlate(open_curr, _CROSS_KERNEL, mode="constant", cval=0.0)
    if not fixed:
        # Free edges mirror the centre value into missing neighbours.
        neighbor_sum = neighbor_sum + state.closed_neighbors * curr
    laplacian = neighbor_sum - 4.0 * curr

    nxt = state.next
    np.copyto(
        nxt,
        (2.0 - gdt) * curr - (1.0 - gdt) * state.prev + state.wave_speed_sq * factor * laplacian,
        casting="same_kind",
    )
    nxt[state.solid] = 0.0

    _apply_paddle(state, nxt, dt2, forcing, bcfg)
    _apply_raindrops(state, nxt, dt, forcing)

    if fixed:
        _zero_edges(nxt)

    open_cells = ~state.solid
    mean = float(nxt[open_cells].mean()) if open_cells.any() else 0.0
    if mean:
        nxt[open_cells] -= mean
        if fixed:
            _zero_edges(nxt)

    state.prev, state.curr, state.next = state.curr, nxt, state.prev
    state.substeps_taken += 1


def advance_basin(
    state: BasinState,
    config: WaveConfig,
    basin_config: BasinConfig | None = None,
) -> BasinState:
    """Advance one frame worth of simulated time and hand the state back."""

    cfg = config.sanitized()
    state.edge = cfg.basin_edge
    count, dt = plan_substeps(state, cfg, basin_config)
    forcing = BasinForcing.from_config(cfg)
    for _ in range(count):
        step_basin(state, dt, forcing, basin_config)
    return state


def _apply_paddle(
    state: BasinState,
    nxt: np.ndarray,
    dt2: float,
    forcing: BasinForcing,
    bcfg: BasinConfig,
) -> None:
    n = state.n
    t = state.time
    z_center = math.sin(t * bcfg.sweep_rate) * bcfg.sweep_amplitude
    sigma = bcfg.sweep_sigma
    drive = (
        math.sin(t * bcfg.paddle_omega_a) * 0.85
        + math.sin(t * bcfg.paddle_omega_b + 1.4) * 0.45
    ) * forcing.paddle_magnitude

    z = (np.arange(n, dtype=np.float64) / (n - 1) - 0.5) * state.half * 2.0
    envelope = np.exp(-((z - z_center) * (z - z_center)) / (2.0 * sigma * sigma))
    nxt[:, bcfg.paddle_column] += drive * state.paddle_profile * envelope * dt2


def _apply_raindrops(state: BasinState, nxt: np.ndarray, dt: float, forcing: BasinForcing) -> None:
    n = state.n
    expected = forcing.drop_rate * dt
    drops = math.floor(expected)
    if state.rand.next() < expected - drops:
        drops += 1

    for _ in range(drops):
        ri, rj, rm = state.rand.draws(3)
        i = 2 + int(math.floor(ri * (n - 4)))
        j = 2 + int(math.floor(rj * (n - 4)))
        impulse = forcing.drop_magnitude * (0.6 + 0.4 * rm)
        nxt[j - 1 : j + 2, i - 1 : i + 2] += impulse * _DROP_KERNEL


def _zero_edges(grid: np.ndarray) -> None:
    grid[0, :] = 0.0
    grid[-1, :] = 0.0
    grid[:, 0] = 0.0
    grid[:, -1] = 0.0
