from __future__ import annotations

import json
import math

import pytest

from waves.config import BasinEdge, ColorMode, ConfigError, WaveConfig, WaveModel, load_wave_config


def test_sanitized_clamps_out_of_range_values() -> None:
    cfg = WaveConfig(
        amplitude=99.0,
        wavelength=0.1,
        speed=0.0,
        steepness=-3.0,
        components=100,
        seed=0,
        wind_dir=-30.0,
        spread=500.0,
        basin_modes=0,
        saturation=150.6,
        ripple=9.0,
    ).sanitized()

    assert cfg.amplitude == 3.8
    assert cfg.wavelength == 0.5
    assert cfg.speed == 0.05
    assert cfg.steepness == 0.0
    assert cfg.components == 24
    assert cfg.seed == 1
    assert cfg.wind_dir == pytest.approx(330.0)
    assert cfg.spread == 180.0
    assert cfg.basin_modes == 1
    assert cfg.saturation == 100
    assert cfg.ripple == 0.4


def test_non_finite_values_fall_back_to_defaults() -> None:
    defaults = WaveConfig()
    cfg = WaveConfig(basin_depth=math.nan, amplitude=math.inf, hue=math.nan, seed=math.nan).sanitized()

    assert cfg.basin_depth == defaults.basin_depth
    assert cfg.amplitude == defaults.amplitude
    assert cfg.hue == defaults.hue
    assert cfg.seed == 1


def test_max_wavelength_stays_above_min() -> None:
    cfg = WaveConfig(min_wavelength=5.0, max_wavelength=1.0).sanitized()

    assert cfg.min_wavelength == 5.0
    assert cfg.max_wavelength == pytest.approx(5.2)


def test_unknown_enum_strings_fall_back() -> None:
    cfg = WaveConfig(model="whirlpool", basin_edge="sticky", color_mode="neon").sanitized()  # type: ignore[arg-type]

    assert cfg.model is WaveModel.SPECTRUM
    assert cfg.basin_edge is BasinEdge.FREE
    assert cfg.color_mode is ColorMode.MONO


def test_negative_seed_wraps_to_unsigned() -> None:
    assert WaveConfig(seed=-1).sanitized().seed == 0xFFFFFFFF
    assert WaveConfig(seed=2**32 + 7).sanitized().seed == 7


def test_from_dict_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigError) as exc:
        WaveConfig.from_dict({"amplitude": 1.0, "windDir": 40})

    assert "windDir" in str(exc.value)


def test_from_dict_rejects_bad_model() -> None:
    with pytest.raises(ConfigError):
        WaveConfig.from_dict({"model": "lava"})


def test_overrides_parse_strings() -> None:
    cfg = WaveConfig().with_overrides({"model": "basin", "seed": "42", "basin_edge": "fixed", "curl": "1.1"})

    assert cfg.model is WaveModel.BASIN
    assert cfg.seed == 42
    assert cfg.basin_edge is BasinEdge.FIXED
    assert cfg.curl == 1.1


def test_load_wave_config_reads_json(tmp_path) -> None:
    path = tmp_path / "waves.json"
    path.write_text(json.dumps({"model": "tsunami", "crest_width": 1.2, "color_mode": "phase"}), encoding="utf-8")

    cfg = load_wave_config(path)

    assert cfg.model is WaveModel.TSUNAMI
    assert cfg.crest_width == 1.2
    assert cfg.color_mode is ColorMode.PHASE
    assert WaveConfig.from_dict(cfg.to_dict()) == cfg


def test_load_wave_config_rejects_non_object(tmp_path) -> None:
    path = tmp_path / "waves.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_wave_config(path)
