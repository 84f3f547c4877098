"""Camera projection and inverse-depth rasterization into pixel buffers."""

from __future__ import annotations

from dataclasses import dataclass
import math

import numpy as np

from waves.config import CameraConfig
from waves.numerics import clamp
from waves.surface import SurfaceSample
from waves.tsunami import SprayParticle


class PixelBuffers:
    """Flat inverse-depth, luminance and height arrays reused across frames.

    Storage only grows; `ensure` reallocates when the requested pixel count
    exceeds the current capacity and `clear` zeroes the active region.
    """

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self.inv_depth = np.zeros(0, dtype=np.float32)
        self.luminance = np.zeros(0, dtype=np.float32)
        self.heights = np.zeros(0, dtype=np.float32)

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def capacity(self) -> int:
        return int(self.inv_depth.shape[0])

    def ensure(self, width: int, height: int) -> bool:
        """Size the active region; returns True when storage was reallocated."""

        if width <= 0 or height <= 0:
            raise ValueError("pixel buffer width and height must be positive")
        self.width = int(width)
        self.height = int(height)
        if self.size <= self.capacity:
            return False
        self.inv_depth = np.zeros(self.size, dtype=np.float32)
        self.luminance = np.zeros(self.size, dtype=np.float32)
        self.heights = np.zeros(self.size, dtype=np.float32)
        return True

    def clear(self) -> None:
        size = self.size
        self.inv_depth[:size] = 0.0
        self.luminance[:size] = 0.0
        self.heights[:size] = 0.0

    def index(self, px: int, py: int) -> int:
        return py * self.width + px

    def views(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Row-major (height, width) views of the active region."""

        shape = (self.height, self.width)
        size = self.size
        return (
            self.inv_depth[:size].reshape(shape),
            self.luminance[:size].reshape(shape),
            self.heights[:size].reshape(shape),
        )


@dataclass(frozen=True)
class CameraPose:
    """Slow autonomous yaw plus a gentle pitch oscillation."""

    cos_pitch: float
    sin_pitch: float
    cos_yaw: float
    sin_yaw: float

    @classmethod
    def at(cls, elapsed: float, camera: CameraConfig | None = None) -> "CameraPose":
        cam = camera or CameraConfig()
        yaw = math.sin(elapsed * cam.yaw_rate) * cam.yaw_amplitude
        pitch = cam.pitch_base + math.sin(elapsed * cam.pitch_rate) * cam.pitch_amplitude
        return cls(
            cos_pitch=math.cos(pitch),
            sin_pitch=math.sin(pitch),
            cos_yaw=math.cos(yaw),
            sin_yaw=math.sin(yaw),
        )

    def rotate(self, x, y, z):
        y1 = y * self.cos_pitch - z * self.sin_pitch
        z1 = y * self.sin_pitch + z * self.cos_pitch
        x2 = x * self.cos_yaw + z1 * self.sin_yaw
        z2 = -x * self.sin_yaw + z1 * self.cos_yaw
        return x2, y1, z2


@dataclass(frozen=True)
class ProjectedPoints:
    px: np.ndarray
    py: np.ndarray
    inv_depth: np.ndarray
    valid: np.ndarray


def sample_step(pixel_width: int, camera: CameraConfig | None = None) -> float:
    """Plan-view step that keeps the sample count near the pixel count."""

    cam = camera or CameraConfig()
    step = cam.base_sample_step * math.sqrt(cam.reference_pixel_width / max(1, pixel_width))
    return clamp(step, cam.min_sample_step, cam.max_sample_step)


def plan_view_grid(step: float, half_extent: float) -> tuple[np.ndarray, np.ndarray]:
    """Flattened (u, v) sample lattice over [-half, half]^2, u-major."""

    if step <= 0:
        raise ValueError("step must be positive")
    count = int(math.floor((2.0 * half_extent) / step + 1e-9)) + 1
    coords = -half_extent + np.arange(count, dtype=np.float64) * step
    return np.repeat(coords, count), np.tile(coords, count)


def project_points(
    pose: CameraPose,
    x: np.ndarray,
    y: np.ndarray,
    z: np.ndarray,
    width: int,
    height: int,
    camera: CameraConfig | None = None,
) -> ProjectedPoints:
    """Rotate and perspective-project world points onto the pixel grid."""

    cam = camera or CameraConfig()
    x2, y2, z2 = pose.rotate(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    depth = z2 + cam.distance
    valid = np.isfinite(x2) & np.isfinite(y2) & np.isfinite(depth) & (depth > cam.near_plane)
    safe_depth = np.where(valid, depth, 1.0)

    scale = cam.field_of_view / safe_depth
    fx = np.floor(width / 2 + x2 * scale * cam.pixel_scale)
    fy = np.floor(height / 2 - y2 * scale * cam.pixel_scale)
    valid &= (fx >= 0) & (fx < width) & (fy >= 0) & (fy < height)

    px = np.where(valid, fx, 0).astype(np.int64)
    py = np.where(valid, fy, 0).astype(np.int64)
    inv_depth = (1.0 / safe_depth).astype(np.float32)
    return ProjectedPoints(px=px, py=py, inv_depth=inv_depth, valid=valid)


def rasterize_surface(
    buffers: PixelBuffers,
    sample: SurfaceSample,
    pose: CameraPose,
    camera: CameraConfig | None = None,
) -> int:
    """Depth-test a batch of surface points into `buffers`.

    Equivalent to writing the points one by one in batch order with a strict
    `inv_depth > stored` test: the nearest point wins each pixel and the
    earliest point wins ties. Returns the number of pixels written.
    """

    y = np.asarray(sample.y, dtype=np.float64).ravel()
    lum = np.asarray(sample.luminance, dtype=np.float64).ravel()
    projected = project_points(
        pose,
        np.asarray(sample.x).ravel(),
        y,
        np.asarray(sample.z).ravel(),
        buffers.width,
        buffers.height,
        camera,
    )
    valid = projected.valid & np.isfinite(y) & np.isfinite(lum)
    if not valid.any():
        return 0

    order = np.flatnonzero(valid)
    idx = projected.py[order] * buffers.width + projected.px[order]
    inv_z = projected.inv_depth[order]

    ranked = np.lexsort((order, -inv_z, idx))
    idx_sorted = idx[ranked]
    first = np.ones(idx_sorted.shape[0], dtype=bool)
    first[1:] = idx_sorted[1:] != idx_sorted[:-1]
    winners = ranked[first]

    target = idx[winners]
    nearer = inv_z[winners] > buffers.inv_depth[target]
    target = target[nearer]
    source = order[winners[nearer]]

    buffers.inv_depth[target] = inv_z[winners[nearer]]
    buffers.luminance[target] = lum[source]
    buffers.heights[target] = y[source]
    return int(target.shape[0])


def inject_spray(
    buffers: PixelBuffers,
    particles: list[SprayParticle],
    pose: CameraPose,
    camera: CameraConfig | None = None,
) -> int:
    """Stamp visible spray at full brightness, always over the surface."""

    written = 0
    for particle in particles:
        if not particle.visible:
            continue
        projected = project_points(
            pose,
            np.array([particle.x]),
            np.array([particle.y]),
            np.array([particle.z]),
            buffers.width,
            buffers.height,
            camera,
        )
        if not projected.valid[0]:
            continue
        idx = buffers.index(int(projected.px[0]), int(projected.py[0]))
        buffers.luminance[idx] = 1.0
        buffers.inv_depth[idx] = 1.0
        buffers.heights[idx] = particle.y
        written += 1
    return written
