"""Braille ocean surface renderer."""

from .config import DEFAULT_COLS, DEFAULT_ROWS, RendererConfig, WaveConfig, WaveModel
from .frame import WaveRenderer, render_frame

__all__ = [
    "DEFAULT_COLS",
    "DEFAULT_ROWS",
    "RendererConfig",
    "WaveConfig",
    "WaveModel",
    "WaveRenderer",
    "render_frame",
]
