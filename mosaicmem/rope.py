"""Rotary position embedding and grid position helpers."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np


class RoPE:
    """Rotary position embedding with a precomputed (cos, sin) table."""

    def __init__(self, dim: int, max_seq_len: int, base: float = 10000.0) -> None:
        if dim % 2 != 0:
            raise ValueError("RoPE dimension must be even")
        self.dim = dim
        self.max_seq_len = max_seq_len
        self.base = base
        half_dim = dim // 2
        inv_freq = 1.0 / base ** (2.0 * np.arange(half_dim) / dim)
        angles = np.outer(np.arange(max_seq_len), inv_freq)
        self.freqs = np.stack([np.cos(angles), np.sin(angles)], axis=-1)

    def rotate(self, x: Sequence[float], pos: int) -> np.ndarray:
        """Rotate pairs (x[2i], x[2i+1]) by the angle of position ``pos`` (clamped to the table)."""
        values = np.asarray(x, dtype=np.float64)
        if values.shape != (self.dim,):
            raise ValueError(f"expected a vector of length {self.dim}, got {values.shape}")
        pos = min(pos, self.max_seq_len - 1)
        cos_val = self.freqs[pos, :, 0]
        sin_val = self.freqs[pos, :, 1]
        x0 = values[0::2]
        x1 = values[1::2]
        output = np.empty(self.dim)
        output[0::2] = x0 * cos_val - x1 * sin_val
        output[1::2] = x0 * sin_val + x1 * cos_val
        return output

    def rotate_batch(
        self, vectors: Sequence[Sequence[float]], positions: Sequence[int]
    ) -> List[np.ndarray]:
        """Rotate each vector by its own position."""
        if len(vectors) != len(positions):
            raise ValueError("vectors and positions must have the same length")
        return [self.rotate(vector, pos) for vector, pos in zip(vectors, positions)]


def grid_positions_2d(height: int, width: int) -> List[Tuple[int, int]]:
    """Row-major (y, x) positions of a height x width grid."""
    return [(y, x) for y in range(height) for x in range(width)]


def grid_positions_3d(time: int, height: int, width: int) -> List[Tuple[int, int, int]]:
    """Row-major (t, y, x) positions of a time x height x width grid."""
    return [(t, y, x) for t in range(time) for y in range(height) for x in range(width)]