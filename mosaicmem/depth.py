"""Monocular depth estimation interface and a synthetic estimator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np


class DepthError(Exception):
    """Raised when depth estimation cannot produce a depth map."""


class DepthEstimator(ABC):
    """Estimates a metric depth map from an RGB image."""

    @abstractmethod
    def estimate_depth(self, image: bytes, width: int, height: int) -> List[List[float]]:
        """Return a ``height`` x ``width`` depth map for an interleaved RGB image."""


@dataclass
class SyntheticDepthEstimator(DepthEstimator):
    """Radial depth map: ``base_depth`` at the centre, growing towards the edges."""

    base_depth: float
    noise_scale: float

    def estimate_depth(self, image: bytes, width: int, height: int) -> List[List[float]]:
        """Depth grows with normalized distance from the image centre; the image is ignored."""
        if width == 0 or height == 0:
            return [[] for _ in range(height)]
        cx = (np.arange(width, dtype=np.float64) - width / 2.0) / width
        cy = (np.arange(height, dtype=np.float64) - height / 2.0) / height
        dist = np.sqrt(cx[np.newaxis, :] ** 2 + cy[:, np.newaxis] ** 2)
        return (self.base_depth + dist * self.noise_scale).tolist()