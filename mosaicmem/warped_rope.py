"""Rotary embedding over continuous (u, v, t) positions of reprojected memory tokens."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from mosaicmem.rope import RoPE


def _rotate_fractional(rope: RoPE, values: np.ndarray, position: float) -> np.ndarray:
    half_dim = rope.dim // 2
    inv_freq = 1.0 / rope.base ** (2.0 * np.arange(half_dim) / rope.dim)
    angle = float(position) * inv_freq
    cos_val = np.cos(angle)
    sin_val = np.sin(angle)
    x0 = values[0::2]
    x1 = values[1::2]
    output = np.empty(rope.dim)
    output[0::2] = x0 * cos_val - x1 * sin_val
    output[1::2] = x0 * sin_val + x1 * cos_val
    return output


class WarpedRoPE:
    """Three rotary embeddings, one per axis, applied at fractional positions.

    A vector's first ``3 * dim_per_axis`` components are split into u, v and t
    blocks; any further components are left unchanged.
    """

    def __init__(
        self, dim_per_axis: int, spatial_resolution: int, temporal_resolution: int
    ) -> None:
        self.rope_u = RoPE(dim_per_axis, spatial_resolution, 10000.0)
        self.rope_v = RoPE(dim_per_axis, spatial_resolution, 10000.0)
        self.rope_t = RoPE(dim_per_axis, temporal_resolution, 10000.0)
        self.spatial_resolution = spatial_resolution
        self.temporal_resolution = temporal_resolution
        self.temporal_half_life = 1.0

    def rotate(
        self, vectors: Sequence[Sequence[float]], positions: Sequence[Sequence[float]]
    ) -> List[np.ndarray]:
        """Rotate each vector by its (u, v, t) position."""
        if len(vectors) != len(positions):
            raise ValueError("vectors and positions must have the same length")
        dim = self.rope_u.dim
        outputs = []
        for vector, position in zip(vectors, positions):
            values = np.asarray(vector, dtype=np.float64)
            if values.shape[-1] < 3 * dim:
                raise ValueError("Vector dim must be >= 3 * dim_per_axis")
            u, v, t = (float(coord) for coord in position)
            output = values.copy()
            output[:dim] = _rotate_fractional(self.rope_u, values[:dim], u)
            output[dim : 2 * dim] = _rotate_fractional(self.rope_v, values[dim : 2 * dim], v)
            output[2 * dim : 3 * dim] = _rotate_fractional(
                self.rope_t, values[2 * dim : 3 * dim], t
            )
            outputs.append(output)
        return outputs