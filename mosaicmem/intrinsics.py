"""Pinhole camera intrinsics and pixel/camera-space projection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np


@dataclass
class CameraIntrinsics:
    """Pinhole intrinsics: focal lengths and principal point in pixels, image size."""

    fx: float = 1.0
    fy: float = 1.0
    cx: float = 0.0
    cy: float = 0.0
    width: int = 1
    height: int = 1

    def matrix(self) -> np.ndarray:
        """The 3x3 intrinsic matrix K."""
        return np.array(
            [
                [self.fx, 0.0, self.cx],
                [0.0, self.fy, self.cy],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )

    def inverse_matrix(self) -> np.ndarray:
        """The inverse intrinsic matrix K^-1."""
        inv_fx = 1.0 / self.fx
        inv_fy = 1.0 / self.fy
        return np.array(
            [
                [inv_fx, 0.0, -self.cx * inv_fx],
                [0.0, inv_fy, -self.cy * inv_fy],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )

    def project(self, point: Sequence[float]) -> Optional[np.ndarray]:
        """Project a camera-space point to pixel coordinates, or None if behind the camera."""
        x, y, z = (float(value) for value in point)
        if z <= 0.0:
            return None
        return np.array([self.fx * x / z + self.cx, self.fy * y / z + self.cy])

    def unproject(self, pixel: Sequence[float], depth: float) -> np.ndarray:
        """Lift a pixel with a depth to a point in camera space."""
        u, v = (float(value) for value in pixel)
        depth = float(depth)
        return np.array(
            [(u - self.cx) * depth / self.fx, (v - self.cy) * depth / self.fy, depth]
        )

    def is_in_bounds(self, pixel: Sequence[float]) -> bool:
        """Whether a pixel coordinate lies inside the image."""
        u, v = (float(value) for value in pixel)
        return 0.0 <= u < self.width and 0.0 <= v < self.height

    @classmethod
    def default_for_resolution(cls, width: int, height: int) -> "CameraIntrinsics":
        """Intrinsics with focal length equal to the width and a centred principal point."""
        return cls(
            fx=float(width),
            fy=float(width),
            cx=width / 2.0,
            cy=height / 2.0,
            width=width,
            height=height,
        )

    def normalize(self, pixel: Sequence[float]) -> np.ndarray:
        """Normalized camera coordinates K^-1 [u, v, 1]."""
        u, v = (float(value) for value in pixel)
        return self.inverse_matrix() @ np.array([u, v, 1.0])