from __future__ import annotations

import json

import numpy as np
import pytest

from cli.main import main


def _run(out_dir, *extra: str) -> int:
    return main(["--out", str(out_dir), "--cols", "20", "--rows", "8", *extra])


def test_runtime_fields_only_in_meta_json(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    code = _run(out_dir, "--model", "trochoidal", "--frames", "2", "--color-mode", "depth")
    assert code == 0

    base = out_dir / "trochoidal-1337" / "20x8"
    meta = json.loads((base / "meta.json").read_text(encoding="utf-8"))
    deterministic_meta = json.loads((base / "deterministic_meta.json").read_text(encoding="utf-8"))

    for key in ("generated_at_utc", "render_seconds", "python_version", "numpy_version"):
        assert key in meta
        assert key not in deterministic_meta
    assert meta["render_seconds"] >= 0.0

    assert deterministic_meta["model"] == "trochoidal"
    assert deterministic_meta["frames"] == 2
    assert len(deterministic_meta["frame_sha256"]) == 2
    assert deterministic_meta["wave_config"]["color_mode"] == "depth"
    assert deterministic_meta["renderer_config"]["basin"]["resolution"] == 96
    for key in ("hit_pixels", "lit_cells", "run_count", "distinct_colors", "sample_step"):
        assert key in deterministic_meta["metrics"]

    for name in ("frames.txt", "frames.ansi", "colors.png", "luminance.png", "height.png", "depth.png"):
        assert (base / name).is_file()
    frames = (base / "frames.txt").read_text(encoding="utf-8").split("\f\n")
    assert len(frames) == 2
    assert all(len(frame.splitlines()) == 8 for frame in frames)


def test_rerun_is_deterministic(tmp_path) -> None:
    out_dir = tmp_path / "out"
    base = out_dir / "spectrum-7" / "20x8"

    assert _run(out_dir, "--seed", "7", "--frames", "3") == 0
    first = (base / "deterministic_meta.json").read_text(encoding="utf-8")
    first_frames = (base / "frames.txt").read_bytes()

    assert _run(out_dir, "--seed", "7", "--frames", "3", "--overwrite") == 0
    assert (base / "deterministic_meta.json").read_text(encoding="utf-8") == first
    assert (base / "frames.txt").read_bytes() == first_frames


def test_existing_output_requires_overwrite(tmp_path) -> None:
    out_dir = tmp_path / "out"
    assert _run(out_dir) == 0

    with pytest.raises(SystemExit):
        _run(out_dir)


def test_overwrite_clears_stale_files(tmp_path) -> None:
    out_dir = tmp_path / "out"
    assert _run(out_dir, "--no-json") == 0
    base = out_dir / "spectrum-1337" / "20x8"
    stale = base / "stale.txt"
    stale.write_text("old", encoding="utf-8")
    assert not (base / "meta.json").exists()

    assert _run(out_dir, "--overwrite") == 0
    assert not stale.exists()
    assert (base / "meta.json").is_file()
    assert not any(child.name.startswith(".staging-") for child in base.parent.iterdir())


def test_basin_run_writes_height_grid(tmp_path) -> None:
    out_dir = tmp_path / "out"
    assert _run(out_dir, "--model", "basin", "--set", "basin-edge=fixed", "--frames", "3") == 0

    base = out_dir / "basin-1337" / "20x8"
    grid = np.load(base / "basin_height.npy")
    deterministic_meta = json.loads((base / "deterministic_meta.json").read_text(encoding="utf-8"))

    assert grid.shape == (96, 96)
    assert np.all(grid[0, :] == 0.0)
    assert deterministic_meta["wave_config"]["basin_edge"] == "fixed"
    assert deterministic_meta["basin"]["substeps"] >= 3
    assert not (base / "frames.ansi").exists()


def test_config_file_and_overrides_layer(tmp_path) -> None:
    config_path = tmp_path / "waves.json"
    config_path.write_text(json.dumps({"model": "tsunami", "seed": 11, "curl": 0.2}), encoding="utf-8")
    out_dir = tmp_path / "out"

    assert _run(out_dir, "--config", str(config_path), "--seed", "12", "--set", "curl=1.3") == 0

    deterministic_meta = json.loads(
        (out_dir / "tsunami-12" / "20x8" / "deterministic_meta.json").read_text(encoding="utf-8")
    )
    assert deterministic_meta["wave_config"]["curl"] == 1.3
    assert deterministic_meta["seed"] == 12


@pytest.mark.parametrize(
    "extra",
    [
        ["--set", "bogus=1"],
        ["--set", "no-equals-sign"],
        ["--set", "model=lava"],
        ["--frames", "0"],
        ["--cols", "0"],
    ],
)
def test_bad_arguments_exit(tmp_path, extra) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(tmp_path / "out", *extra)

    assert exc.value.code == 2
