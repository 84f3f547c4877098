"""CLI entry point for wave rendering."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import hashlib
import logging
from pathlib import Path
import platform
import shutil
import sys
import tempfile
import time

import numpy as np
import structlog

from waves.ansi import (
    CLEAR_SCREEN,
    CURSOR_HOME,
    HIDE_CURSOR,
    RESET,
    SHOW_CURSOR,
    enable_windows_ansi,
    frame_to_ansi,
    terminal_grid_size,
)
from waves.config import (
    DEFAULT_COLS,
    DEFAULT_ROWS,
    BasinConfig,
    ColorMode,
    ConfigError,
    RendererConfig,
    WaveConfig,
    WaveModel,
    load_wave_config,
)
from waves.derive import glyph_colors_rgb, height_preview_u8, inverse_depth_preview_u8, luminance_preview_u8
from waves.frame import FrameResult, WaveRenderer
from waves.io import (
    move_tree_contents,
    resolve_output_dir,
    safe_clean_output_dir,
    write_frames_text,
    write_grid_npy,
    write_json,
    write_png_rgb,
    write_png_u8,
)
from waves.metrics import basin_metrics, frame_metrics

logger = structlog.get_logger()

FRAME_DT = BasinConfig().frame_dt


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Procedural ocean surface rendered as braille glyphs")
    parser.add_argument(
        "--model",
        choices=[model.value for model in WaveModel],
        help="Wave model (default: spectrum, or the value from --config)",
    )
    parser.add_argument("--seed", type=int, help="Seed for the spectrum and basin forcing")
    parser.add_argument("--config", type=Path, help="JSON file with wave settings")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a single wave setting (repeatable)",
    )
    parser.add_argument(
        "--color-mode",
        choices=[mode.value for mode in ColorMode],
        help="Glyph coloring: mono, depth (height to hue) or phase (drifting hue)",
    )
    parser.add_argument("--cols", type=int, default=DEFAULT_COLS, help="Output width in glyph cells")
    parser.add_argument("--rows", type=int, default=DEFAULT_ROWS, help="Output height in glyph cells")
    parser.add_argument("--fit", action="store_true", help="Size the grid to the current terminal")
    parser.add_argument("--frames", type=int, default=1, help="Number of frames to render")
    parser.add_argument("--start", type=float, default=0.0, help="Simulation time of the first frame in seconds")
    parser.add_argument("--dt", type=float, default=FRAME_DT, help="Simulation time between frames in seconds")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--live", action="store_true", help="Animate in the terminal until interrupted")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        wave_config = resolve_wave_config(args)
    except (ConfigError, OSError) as exc:
        parser.error(str(exc))

    if args.frames < 1:
        parser.error("--frames must be at least 1")
    if args.dt <= 0:
        parser.error("--dt must be positive")

    cols, rows = terminal_grid_size() if args.fit else (args.cols, args.rows)
    if cols <= 0 or rows <= 0:
        parser.error("--cols and --rows must be positive")

    renderer = WaveRenderer(RendererConfig())
    if args.live:
        return run_live(renderer, wave_config, cols, rows, start=args.start, dt=args.dt)

    cfg = wave_config.sanitized()
    logger.info("render started", model=cfg.model.value, seed=cfg.seed, cols=cols, rows=rows, frames=args.frames)

    results: list[FrameResult] = []
    render_start = time.perf_counter()
    for i in range(args.frames):
        results.append(renderer.render(cfg, args.start + i * args.dt, cols, rows))
    render_seconds = time.perf_counter() - render_start
    last = results[-1]
    metrics = frame_metrics(renderer.buffers, last.frame)

    run_name = f"{cfg.model.value}-{cfg.seed}"
    try:
        out_dir = resolve_output_dir(args.out, run_name, cols, rows, overwrite=args.overwrite)
    except FileExistsError as exc:
        parser.error(str(exc))

    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_frames_text(stage_dir / "frames.txt", [result.frame.to_text() for result in results])
        if last.frame.colored:
            write_frames_text(stage_dir / "frames.ansi", [frame_to_ansi(result.frame) for result in results])
            write_png_rgb(stage_dir / "colors.png", glyph_colors_rgb(last.frame))
        write_png_u8(stage_dir / "luminance.png", luminance_preview_u8(renderer.buffers))
        write_png_u8(stage_dir / "height.png", height_preview_u8(renderer.buffers, amplitude=max(cfg.amplitude, 1e-3)))
        write_png_u8(stage_dir / "depth.png", inverse_depth_preview_u8(renderer.buffers))
        if renderer.basin is not None and cfg.model is WaveModel.BASIN:
            write_grid_npy(stage_dir / "basin_height.npy", renderer.basin.curr)

        if args.json:
            timestamp = datetime.now(timezone.utc).isoformat()
            deterministic_meta = {
                "model": cfg.model.value,
                "seed": cfg.seed,
                "cols": cols,
                "rows": rows,
                "frames": args.frames,
                "start_time": args.start,
                "frame_dt": args.dt,
                "wave_config": cfg.to_dict(),
                "renderer_config": renderer.config.to_dict(),
                "frame_sha256": [_text_digest(result.frame.to_text()) for result in results],
                "metrics": {
                    "hit_pixels": metrics.hit_pixels,
                    "hit_fraction": metrics.hit_fraction,
                    "lit_cells": metrics.lit_cells,
                    "run_count": metrics.run_count,
                    "distinct_colors": metrics.distinct_colors,
                    "height_min": metrics.height_min,
                    "height_max": metrics.height_max,
                    "sample_step": last.sample_step,
                    "samples": last.samples,
                    "spray_pixels": last.spray_written,
                },
            }
            if renderer.basin is not None and cfg.model is WaveModel.BASIN:
                basin = basin_metrics(renderer.basin)
                deterministic_meta["basin"] = {
                    "max_abs_height": basin.max_abs_height,
                    "mean_height": basin.mean_height,
                    "simulated_time": basin.time,
                    "substeps": basin.substeps,
                }
            meta = {
                **deterministic_meta,
                "generated_at_utc": timestamp,
                "render_seconds": render_seconds,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        safe_clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    logger.info("render finished", out_dir=str(out_dir), seconds=round(render_seconds, 3))
    print(f"Rendered {args.frames} frame(s): {out_dir}")
    print(
        "Coverage "
        f"{metrics.hit_fraction * 100.0:.1f}% of pixels; "
        f"{metrics.lit_cells} lit cells; "
        f"{metrics.run_count} runs, {metrics.distinct_colors} colors"
    )
    print(f"Render time: {render_seconds:.3f} s ({cols}x{rows}, {render_seconds / args.frames * 1000.0:.1f} ms/frame)")
    file_count = sum(1 for child in out_dir.iterdir() if child.is_file())
    print(f"Output files: {file_count}")
    return 0


def resolve_wave_config(args: argparse.Namespace) -> WaveConfig:
    """Layer defaults, the config file, flag shortcuts and --set overrides."""

    config = load_wave_config(args.config) if args.config else WaveConfig()
    shortcuts: dict[str, str] = {}
    if args.model is not None:
        shortcuts["model"] = args.model
    if args.seed is not None:
        shortcuts["seed"] = str(args.seed)
    if args.color_mode is not None:
        shortcuts["color_mode"] = args.color_mode
    shortcuts.update(_parse_overrides(args.overrides))
    return config.with_overrides(shortcuts) if shortcuts else config


def run_live(
    renderer: WaveRenderer,
    config: WaveConfig,
    cols: int,
    rows: int,
    *,
    start: float,
    dt: float,
) -> int:
    """Play frames in the terminal at the simulation tick until Ctrl-C."""

    cfg = config.sanitized()
    enable_windows_ansi()
    sys.stdout.write(CLEAR_SCREEN + HIDE_CURSOR)
    elapsed = start
    frames = 0
    try:
        while True:
            tick = time.perf_counter()
            result = renderer.render(cfg, elapsed, cols, rows)
            sys.stdout.write(CURSOR_HOME)
            sys.stdout.write(frame_to_ansi(result.frame))
            sys.stdout.flush()
            frames += 1
            elapsed += dt
            time.sleep(max(0.0, dt - (time.perf_counter() - tick)))
    except KeyboardInterrupt:
        pass
    finally:
        sys.stdout.write(RESET + CLEAR_SCREEN + SHOW_CURSOR)
        sys.stdout.flush()
    logger.info("live playback ended", frames=frames, simulated_seconds=round(elapsed - start, 3))
    return 0


def _parse_overrides(items: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"Expected KEY=VALUE, got {item!r}")
        overrides[key.strip().replace("-", "_")] = value.strip()
    return overrides


def _text_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


if __name__ == "__main__":
    raise SystemExit(main())
