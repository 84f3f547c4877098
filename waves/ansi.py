"""ANSI terminal output for glyph frames."""

from __future__ import annotations

import ctypes
import os
import shutil

import numpy as np

from waves.config import MAX_COLS, MAX_ROWS
from waves.derive import hsl_to_rgb
from waves.glyphs import GlyphFrame

RESET = "\033[0m"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
CLEAR_SCREEN = "\033[2J"
CURSOR_HOME = "\033[1;1H"

DEFAULT_FG = (245, 245, 247)


def enable_windows_ansi() -> None:
    if os.name == "nt":
        kernel32 = ctypes.windll.kernel32
        handle = kernel32.GetStdHandle(-11)
        mode = ctypes.c_ulong()
        kernel32.GetConsoleMode(handle, ctypes.byref(mode))
        mode.value |= 4  # ENABLE_VIRTUAL_TERMINAL_PROCESSING
        kernel32.SetConsoleMode(handle, mode)


def ansi_color_fg(r: int, g: int, b: int) -> str:
    return f"\033[38;2;{r};{g};{b}m"


def terminal_grid_size(*, reserve_rows: int = 1) -> tuple[int, int]:
    """Current terminal size in cells, capped at the largest supported grid."""

    cols, rows = shutil.get_terminal_size()
    cols = max(1, min(MAX_COLS, cols))
    rows = max(1, min(MAX_ROWS, rows - reserve_rows))
    return cols, rows


def frame_to_ansi(frame: GlyphFrame, *, default_fg: tuple[int, int, int] = DEFAULT_FG) -> str:
    """Render a frame with one color escape per run instead of per cell."""

    default_escape = ansi_color_fg(*default_fg)
    parts: list[str] = []
    for row, runs in enumerate(frame.runs):
        text = frame.row_text(row)
        for run in runs:
            if run.color is None:
                parts.append(default_escape)
            else:
                r, g, b = (
                    int(c)
                    for c in hsl_to_rgb(
                        np.array(run.color.hue),
                        np.array(run.color.saturation),
                        np.array(run.color.lightness),
                    )
                )
                parts.append(ansi_color_fg(r, g, b))
            parts.append(text[run.start : run.stop])
        parts.append(RESET + "\n")
    return "".join(parts)
