"""Per-frame rendering pipeline."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from waves.basin import BasinState, advance_basin, ensure_basin
from waves.config import RendererConfig, WaveConfig, WaveModel
from waves.glyphs import CELL_HEIGHT, CELL_WIDTH, GlyphFrame, encode_glyphs
from waves.raster import CameraPose, PixelBuffers, inject_spray, plan_view_grid, rasterize_surface, sample_step
from waves.spectrum import SpectrumComponent, SpectrumKey, build_spectrum, spectrum_key
from waves.surface import prepare_surface, sample_surface
from waves.tsunami import MIN_AMPLITUDE, spray_particles

logger = structlog.get_logger()


@dataclass(frozen=True)
class FrameResult:
    """Encoded frame plus the bookkeeping needed for metrics."""

    frame: GlyphFrame
    time: float
    model: WaveModel
    sample_step: float
    samples: int
    pixels_written: int
    spray_written: int
    basin_substeps: int


class WaveRenderer:
    """Owns everything that persists between frames.

    That is the grow-only pixel buffers, the basin solver state and the cached
    spectrum. Frames must be rendered sequentially; the basin advances once
    per `render` call.
    """

    def __init__(self, config: RendererConfig | None = None) -> None:
        self.config = config or RendererConfig()
        self.buffers = PixelBuffers()
        self.basin: BasinState | None = None
        self._spectrum_key: SpectrumKey | None = None
        self._spectrum: tuple[SpectrumComponent, ...] = ()

    def spectrum_for(self, config: WaveConfig) -> tuple[SpectrumComponent, ...]:
        """Cached un-rotated spectrum; rebuilt only when its shape inputs change."""

        key = spectrum_key(config)
        if key != self._spectrum_key:
            self._spectrum = build_spectrum(config)
            self._spectrum_key = key
            logger.debug("spectrum cache refreshed", key=key)
        return self._spectrum

    def step_basin(self, config: WaveConfig) -> tuple[BasinState, int]:
        """Rebuild the basin if its key changed, then advance one frame."""

        state = ensure_basin(self.basin, config, self.config.basin)
        before = state.substeps_taken
        self.basin = advance_basin(state, config, self.config.basin)
        return self.basin, self.basin.substeps_taken - before

    def render(self, config: WaveConfig, elapsed: float, cols: int, rows: int) -> FrameResult:
        """Render one frame for simulation time `elapsed` onto a cols x rows grid."""

        if cols <= 0 or rows <= 0:
            raise ValueError("cols and rows must be positive")

        cfg = config.sanitized()
        cam = self.config.camera
        pixel_width = cols * CELL_WIDTH
        pixel_height = rows * CELL_HEIGHT
        if self.buffers.ensure(pixel_width, pixel_height):
            logger.debug("pixel buffers grown", width=pixel_width, height=pixel_height)
        self.buffers.clear()

        spectrum: tuple[SpectrumComponent, ...] | None = None
        basin: BasinState | None = None
        substeps = 0
        if cfg.model is WaveModel.SPECTRUM:
            spectrum = self.spectrum_for(cfg)
        elif cfg.model is WaveModel.BASIN:
            basin, substeps = self.step_basin(cfg)

        step = sample_step(pixel_width, cam)
        pose = CameraPose.at(elapsed, cam)
        samples = 0
        written = 0
        spray = 0

        # An amplitude of zero is an empty sea: nothing is drawn.
        if cfg.amplitude >= MIN_AMPLITUDE:
            surface = prepare_surface(
                cfg,
                elapsed,
                spectrum=spectrum,
                basin=basin,
                renderer_config=self.config,
            )
            u, v = plan_view_grid(step, cam.half_extent)
            samples = int(u.shape[0])
            written = rasterize_surface(self.buffers, sample_surface(surface, u, v), pose, cam)
            if surface.tsunami is not None:
                particles = spray_particles(surface.tsunami, elapsed, self.config.tsunami)
                spray = inject_spray(self.buffers, particles, pose, cam)

        frame = encode_glyphs(self.buffers, cols, rows, cfg, elapsed, self.config.glyph)
        return FrameResult(
            frame=frame,
            time=elapsed,
            model=cfg.model,
            sample_step=step,
            samples=samples,
            pixels_written=written,
            spray_written=spray,
            basin_substeps=substeps,
        )


def render_frame(
    config: WaveConfig,
    elapsed: float,
    cols: int,
    rows: int,
    *,
    renderer: WaveRenderer | None = None,
) -> FrameResult:
    """One-shot convenience wrapper; pass a renderer to keep state across frames."""

    return (renderer or WaveRenderer()).render(config, elapsed, cols, rows)
