from __future__ import annotations

import numpy as np
import pytest

from waves.raster import (
    CameraPose,
    PixelBuffers,
    inject_spray,
    plan_view_grid,
    project_points,
    rasterize_surface,
    sample_step,
)
from waves.surface import SurfaceSample
from waves.tsunami import SprayParticle

LEVEL = CameraPose(cos_pitch=1.0, sin_pitch=0.0, cos_yaw=1.0, sin_yaw=0.0)


def _buffers(width: int = 16, height: int = 12) -> PixelBuffers:
    buffers = PixelBuffers()
    buffers.ensure(width, height)
    buffers.clear()
    return buffers


def _points(xs, ys, zs, lums) -> SurfaceSample:
    return SurfaceSample(
        x=np.asarray(xs, dtype=np.float64),
        y=np.asarray(ys, dtype=np.float64),
        z=np.asarray(zs, dtype=np.float64),
        luminance=np.asarray(lums, dtype=np.float64),
    )


def test_buffers_only_grow() -> None:
    buffers = PixelBuffers()

    assert buffers.ensure(10, 8) is True
    storage = buffers.inv_depth
    assert buffers.ensure(4, 4) is False
    assert buffers.inv_depth is storage
    assert buffers.capacity == 80
    assert buffers.size == 16
    assert buffers.ensure(20, 8) is True
    assert buffers.capacity == 160


def test_buffers_reject_empty_size() -> None:
    with pytest.raises(ValueError):
        PixelBuffers().ensure(0, 5)


def test_clear_only_touches_active_region() -> None:
    buffers = _buffers(4, 4)
    buffers.inv_depth[:] = 2.0
    buffers.ensure(2, 2)
    buffers.clear()

    assert np.all(buffers.inv_depth[:4] == 0.0)
    assert np.all(buffers.inv_depth[4:] == 2.0)
    inv_depth, luminance, heights = buffers.views()
    assert inv_depth.shape == luminance.shape == heights.shape == (2, 2)


def test_nearer_sample_wins_either_order() -> None:
    for order in ((0.0, 1.0), (1.0, 0.0)):
        buffers = _buffers()
        lums = [0.2 if z == 0.0 else 0.9 for z in order]
        written = rasterize_surface(buffers, _points([0.0, 0.0], [0.0, 0.0], order, lums), LEVEL)

        idx = buffers.index(8, 6)
        assert written == 1
        assert buffers.inv_depth[idx] == np.float32(1.0 / 7.0)
        assert buffers.luminance[idx] == np.float32(0.2)


def test_first_sample_wins_ties() -> None:
    buffers = _buffers()
    batch = _points([0.0, 0.0, 0.0], [0.05, 0.05, 0.05], [0.0, 0.0, 0.0], [0.3, 0.6, 0.9])
    written = rasterize_surface(buffers, batch, LEVEL)

    inv_depth, luminance, heights = buffers.views()
    assert written == 1
    assert np.count_nonzero(inv_depth) == 1
    assert luminance[inv_depth > 0][0] == np.float32(0.3)
    assert heights[inv_depth > 0][0] == np.float32(0.05)


def test_farther_batch_does_not_overwrite() -> None:
    buffers = _buffers()
    rasterize_surface(buffers, _points([0.0], [0.0], [0.0], [0.4]), LEVEL)

    assert rasterize_surface(buffers, _points([0.0], [0.0], [1.0], [1.0]), LEVEL) == 0
    assert rasterize_surface(buffers, _points([0.0], [0.0], [0.0], [1.0]), LEVEL) == 0
    assert buffers.luminance[buffers.index(8, 6)] == np.float32(0.4)


def test_points_behind_camera_are_skipped() -> None:
    buffers = _buffers()
    written = rasterize_surface(buffers, _points([0.0, 0.0], [0.0, 0.0], [-7.0, -9.0], [1.0, 1.0]), LEVEL)

    assert written == 0
    assert not np.any(buffers.inv_depth)


def test_projection_matches_pinhole_formula() -> None:
    projected = project_points(LEVEL, np.array([0.1]), np.array([0.05]), np.array([0.0]), 16, 12)

    assert projected.valid[0]
    assert projected.px[0] == int(np.floor(8 + 0.1 * (75.0 / 7.0) * 4.0))
    assert projected.py[0] == int(np.floor(6 - 0.05 * (75.0 / 7.0) * 4.0))


def test_off_screen_points_are_dropped() -> None:
    projected = project_points(LEVEL, np.array([5.0, np.nan]), np.array([0.0, 0.0]), np.array([0.0, 0.0]), 16, 12)

    assert not projected.valid.any()


def test_camera_pose_is_level_at_rest_yaw() -> None:
    pose = CameraPose.at(0.0)

    assert pose.cos_yaw == 1.0
    assert pose.sin_yaw == 0.0
    assert pose.cos_pitch == pytest.approx(np.cos(0.4))


def test_sample_step_tracks_pixel_width() -> None:
    assert sample_step(180) == pytest.approx(0.05)
    assert sample_step(1) == pytest.approx(0.07)
    assert sample_step(10_000) == pytest.approx(0.03)
    assert sample_step(0) == pytest.approx(0.07)


def test_plan_view_grid_covers_extent() -> None:
    u, v = plan_view_grid(0.05, 3.5)

    assert u.shape == v.shape == (141 * 141,)
    assert u[0] == -3.5 and v[0] == -3.5
    assert u[-1] == pytest.approx(3.5)
    assert np.all(u[:141] == -3.5)
    assert v[1] == pytest.approx(-3.45)


def test_spray_overrides_surface() -> None:
    buffers = _buffers()
    rasterize_surface(buffers, _points([0.0], [0.0], [-5.0], [0.1]), LEVEL)
    idx = buffers.index(8, 6)
    assert buffers.inv_depth[idx] == np.float32(0.5)

    particles = [
        SprayParticle(index=0, x=0.0, y=0.0, z=0.0, visible=True),
        SprayParticle(index=1, x=0.3, y=0.0, z=0.0, visible=False),
    ]
    written = inject_spray(buffers, particles, LEVEL)

    assert written == 1
    assert buffers.luminance[idx] == 1.0
    assert buffers.inv_depth[idx] == 1.0
    assert np.count_nonzero(buffers.inv_depth) == 1
