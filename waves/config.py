"""Configuration models for the wave renderer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
import json
import math
from pathlib import Path
from typing import Any

from waves.rng import normalize_seed


DEFAULT_COLS = 90
DEFAULT_ROWS = 32
MAX_COLS = 240
MAX_ROWS = 120


class ConfigError(ValueError):
    """Raised when a configuration payload cannot be interpreted."""


class WaveModel(str, Enum):
    TROCHOIDAL = "trochoidal"
    SPECTRUM = "spectrum"
    BASIN = "basin"
    TSUNAMI = "tsunami"


class BasinEdge(str, Enum):
    FREE = "free"
    FIXED = "fixed"


class ColorMode(str, Enum):
    MONO = "mono"
    DEPTH = "depth"
    PHASE = "phase"


@dataclass(frozen=True)
class WaveConfig:
    """Per-frame wave settings; call `sanitized()` before use."""

    model: WaveModel = WaveModel.SPECTRUM
    amplitude: float = 2.2
    wavelength: float = 3.2
    speed: float = 0.6
    steepness: float = 0.75
    components: int = 12
    min_wavelength: float = 0.8
    max_wavelength: float = 5.5
    wind_dir: float = 20.0
    spread: float = 120.0
    seed: int = 1337
    basin_modes: int = 28
    basin_depth: float = 2.2
    basin_edge: BasinEdge = BasinEdge.FREE
    crest_width: float = 0.8
    curl: float = 0.7
    ripple: float = 0.12
    color_mode: ColorMode = ColorMode.MONO
    hue: float = 200.0
    hue_range: float = 120.0
    saturation: int = 70

    def sanitized(self) -> "WaveConfig":
        """Return a copy with every field clamped into its supported range."""

        defaults = WaveConfig()
        min_wl = _clamp_field(self.min_wavelength, defaults.min_wavelength, 0.4, 12.0)
        return replace(
            self,
            model=_enum_field(WaveModel, self.model, defaults.model),
            amplitude=_clamp_field(self.amplitude, defaults.amplitude, 0.0, 3.8),
            wavelength=_clamp_field(self.wavelength, defaults.wavelength, 0.5, 12.0),
            speed=_clamp_field(self.speed, defaults.speed, 0.05, 2.5),
            steepness=_clamp_field(self.steepness, defaults.steepness, 0.0, 1.0),
            components=int(round(_clamp_field(self.components, defaults.components, 1, 24))),
            min_wavelength=min_wl,
            max_wavelength=_clamp_field(self.max_wavelength, defaults.max_wavelength, min_wl + 0.2, 12.0),
            wind_dir=_wrap_degrees(self.wind_dir, defaults.wind_dir),
            spread=_clamp_field(self.spread, defaults.spread, 0.0, 180.0),
            seed=normalize_seed(self.seed),
            basin_modes=int(round(_clamp_field(self.basin_modes, defaults.basin_modes, 1, 48))),
            basin_depth=_clamp_field(self.basin_depth, defaults.basin_depth, 0.2, 10.0),
            basin_edge=_enum_field(BasinEdge, self.basin_edge, defaults.basin_edge),
            crest_width=_clamp_field(self.crest_width, defaults.crest_width, 0.3, 1.6),
            curl=_clamp_field(self.curl, defaults.curl, 0.0, 1.4),
            ripple=_clamp_field(self.ripple, defaults.ripple, 0.0, 0.4),
            color_mode=_enum_field(ColorMode, self.color_mode, defaults.color_mode),
            hue=_wrap_degrees(self.hue, defaults.hue),
            hue_range=_clamp_field(self.hue_range, defaults.hue_range, 0.0, 200.0),
            saturation=int(round(_clamp_field(self.saturation, defaults.saturation, 0, 100))),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, Enum):
                payload[key] = value.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WaveConfig":
        """Build a config from a plain mapping; values are not clamped here."""

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown wave setting(s): {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, raw in payload.items():
            values[key] = _coerce_field(key, raw)
        return cls(**values)

    def with_overrides(self, overrides: dict[str, str]) -> "WaveConfig":
        """Apply `key=value` style string overrides."""

        payload = self.to_dict()
        for key, text in overrides.items():
            if key not in payload:
                raise ConfigError(f"Unknown wave setting: {key}")
            payload[key] = text
        return WaveConfig.from_dict(payload)


@dataclass(frozen=True)
class CameraConfig:
    """Autonomous camera motion and projection constants."""

    distance: float = 7.0
    field_of_view: float = 75.0
    pixel_scale: float = 4.0
    near_plane: float = 0.1
    yaw_rate: float = 0.08
    yaw_amplitude: float = 0.35
    pitch_base: float = 0.4
    pitch_rate: float = 0.2
    pitch_amplitude: float = 0.2
    half_extent: float = 3.5
    base_sample_step: float = 0.05
    min_sample_step: float = 0.03
    max_sample_step: float = 0.07
    reference_pixel_width: int = DEFAULT_COLS * 2


@dataclass(frozen=True)
class BasinConfig:
    """Grid, stability and forcing constants of the basin solver."""

    resolution: int = 96
    half_extent: float = 3.5
    damping: float = 0.85
    cfl_factor: float = 0.65
    frame_dt: float = 0.045
    max_substeps: int = 10
    min_wave_speed_sq: float = 0.15
    max_wave_speed_sq: float = 12.0
    seed_impulses: int = 6
    paddle_column: int = 1
    paddle_omega_a: float = 1.8
    paddle_omega_b: float = 2.3
    sweep_rate: float = 0.22
    sweep_amplitude: float = 1.6
    sweep_sigma: float = 1.3
    slope_epsilon: float = 0.055


@dataclass(frozen=True)
class TsunamiConfig:
    """Spray and slope constants of the tsunami model."""

    spray_count: int = 90
    spray_threshold: float = 0.72
    slope_epsilon: float = 0.05
    baseline_coords: tuple[float, ...] = (-3.0, -1.0, 1.0, 3.0)


@dataclass(frozen=True)
class GlyphConfig:
    """Glyph density and color quantization."""

    levels: int = 9
    hue_step: int = 12
    lightness_step: int = 6
    min_lightness: float = 8.0
    max_lightness: float = 90.0
    phase_hue_rate: float = 25.0


@dataclass(frozen=True)
class RendererConfig:
    """Primary renderer configuration."""

    camera: CameraConfig = field(default_factory=CameraConfig)
    basin: BasinConfig = field(default_factory=BasinConfig)
    tsunami: TsunamiConfig = field(default_factory=TsunamiConfig)
    glyph: GlyphConfig = field(default_factory=GlyphConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_wave_config(path: str | Path) -> WaveConfig:
    """Read a `WaveConfig` from a JSON object file."""

    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {path} ({exc})") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file must contain a JSON object: {path}")
    return WaveConfig.from_dict(payload)


def _clamp_field(value: Any, default: float, lo: float, hi: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float(default)
    if not math.isfinite(number):
        number = float(default)
    return max(lo, min(hi, number))


def _wrap_degrees(value: Any, default: float) -> float:
    number = _clamp_field(value, default, -math.inf, math.inf)
    wrapped = number % 360.0
    # -1e-20 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def _enum_field(enum_type: type[Enum], value: Any, default: Enum) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        return default


_ENUM_FIELDS: dict[str, type[Enum]] = {
    "model": WaveModel,
    "basin_edge": BasinEdge,
    "color_mode": ColorMode,
}
_INT_FIELDS = frozenset({"components", "seed", "basin_modes", "saturation"})


def _coerce_field(key: str, raw: Any) -> Any:
    if key in _ENUM_FIELDS:
        enum_type = _ENUM_FIELDS[key]
        try:
            return enum_type(raw)
        except ValueError as exc:
            options = ", ".join(member.value for member in enum_type)
            raise ConfigError(f"Invalid {key} {raw!r}; expected one of: {options}") from exc
    try:
        number = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting {key} must be numeric, got {raw!r}") from exc
    if key in _INT_FIELDS and math.isfinite(number):
        return int(math.floor(number))
    return number
