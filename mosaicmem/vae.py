"""Variational autoencoder interface and a synthetic pooling/interpolating VAE."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

Shape5 = Tuple[int, int, int, int, int]


class VAEError(Exception):
    """Raised when a VAE cannot encode or decode its input."""


def _as_shape(shape: Sequence[int]) -> Shape5:
    dims = tuple(int(dim) for dim in shape)
    if len(dims) != 5:
        raise VAEError(f"Invalid dimensions: expected 5 dims, got {len(dims)} dims")
    if any(dim < 0 for dim in dims):
        raise VAEError("Invalid dimensions: expected non-negative dims, got negative dims")
    return dims  # type: ignore[return-value]


def _flat(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).ravel()


class VAE(ABC):
    """Encodes [B, C, T, H, W] frames to latents and decodes them back.

    Tensors are passed and returned flattened in row-major order together
    with their 5-dimensional shape.
    """

    latent_channels: int

    @abstractmethod
    def encode(self, frames: Sequence[float], shape: Sequence[int]) -> Tuple[np.ndarray, Shape5]:
        """Encode flattened frames of ``shape`` into a flattened latent and its shape."""

    @abstractmethod
    def decode(self, latent: Sequence[float], shape: Sequence[int]) -> Tuple[np.ndarray, Shape5]:
        """Decode a flattened latent of ``shape`` into flattened frames and their shape."""

    @property
    @abstractmethod
    def spatial_downsample(self) -> int:
        """Spatial downsampling factor."""

    @property
    @abstractmethod
    def temporal_downsample(self) -> int:
        """Temporal downsampling factor."""


@dataclass
class SyntheticVAE(VAE):
    """A VAE that average-pools to encode and interpolates to decode."""

    spatial_factor: int
    temporal_factor: int
    latent_channels: int

    @property
    def spatial_downsample(self) -> int:
        return self.spatial_factor

    @property
    def temporal_downsample(self) -> int:
        return self.temporal_factor

    def encode(self, frames: Sequence[float], shape: Sequence[int]) -> Tuple[np.ndarray, Shape5]:
        b, c, t, h, w = _as_shape(shape)
        temporal_factor = max(self.temporal_factor, 1)
        spatial_factor = max(self.spatial_factor, 1)
        if self.latent_channels <= 0 or 0 in (c, t, h, w):
            raise VAEError("Encoding failed: shape dimensions must be non-zero")
        data = _flat(frames)
        expected = b * c * t * h * w
        if data.size != expected:
            raise VAEError(
                f"Invalid dimensions: expected {expected} elements, got {data.size} elements"
            )

        lat_t = max(t // temporal_factor, 1)
        lat_h = max(h // spatial_factor, 1)
        lat_w = max(w // spatial_factor, 1)
        lat_c = self.latent_channels
        volume = data.reshape(b, c, t, h, w)

        def bounds(index: int, factor: int, size: int, clamp_start: bool) -> Tuple[int, int]:
            start = index * factor
            if clamp_start:
                start = min(start, size - 1)
            end = max(min((index + 1) * factor, size), start + 1)
            return start, end

        t_bounds = [bounds(lt, temporal_factor, t, True) for lt in range(lat_t)]
        y_bounds = [bounds(ly, spatial_factor, h, False) for ly in range(lat_h)]
        x_bounds = [bounds(lx, spatial_factor, w, False) for lx in range(lat_w)]

        pooled = np.zeros((b, c, lat_t, lat_h, lat_w))
        for lt, (t0, t1) in enumerate(t_bounds):
            for ly, (y0, y1) in enumerate(y_bounds):
                for lx, (x0, x1) in enumerate(x_bounds):
                    pooled[:, :, lt, ly, lx] = volume[:, :, t0:t1, y0:y1, x0:x1].mean(
                        axis=(2, 3, 4)
                    )

        luminance = pooled.mean(axis=1)
        spatial_phase = (
            np.arange(lat_h)[:, None] / lat_h + np.arange(lat_w)[None, :] / lat_w
        )
        temporal_phase = np.arange(lat_t) / lat_t

        latent = np.zeros((b, lat_c, lat_t, lat_h, lat_w))
        for out_ch in range(lat_c):
            if out_ch < c:
                latent[:, out_ch] = pooled[:, out_ch]
                continue
            channel_weight = 0.75 + 0.15 * ((out_ch // c) % 3)
            phase = (
                np.sin(
                    (out_ch + 1) * 0.37
                    + spatial_phase[None, :, :] * 1.91
                    + temporal_phase[:, None, None] * 2.27
                )
                * 0.05
            )
            latent[:, out_ch] = luminance * channel_weight + phase[None]

        return latent.ravel(), (b, lat_c, lat_t, lat_h, lat_w)

    def decode(self, latent: Sequence[float], shape: Sequence[int]) -> Tuple[np.ndarray, Shape5]:
        b, c_lat, t_lat, h_lat, w_lat = _as_shape(shape)
        temporal_factor = max(self.temporal_factor, 1)
        spatial_factor = max(self.spatial_factor, 1)
        if 0 in (c_lat, t_lat, h_lat, w_lat):
            raise VAEError("Decoding failed: latent dimensions must be non-zero")
        data = _flat(latent)
        expected = b * c_lat * t_lat * h_lat * w_lat
        if data.size != expected:
            raise VAEError(
                f"Invalid dimensions: expected {expected} elements, got {data.size} elements"
            )

        volume = data.reshape(b, c_lat, t_lat, h_lat, w_lat)
        t = t_lat * temporal_factor
        h = h_lat * spatial_factor
        w = w_lat * spatial_factor

        def axis_plan(size: int, factor: int, latent_size: int):
            out = np.arange(size)
            first = out // factor
            second = np.minimum(first + 1, latent_size - 1)
            alpha = (out % factor) / factor if factor > 1 else np.zeros(size)
            return first, second, alpha

        t0, t1, ta = axis_plan(t, temporal_factor, t_lat)
        y0, y1, ya = axis_plan(h, spatial_factor, h_lat)
        x0, x1, xa = axis_plan(w, spatial_factor, w_lat)

        sample = np.zeros((b, c_lat, t, h, w))
        for it, wt in ((t0, 1.0 - ta), (t1, ta)):
            for iy, wy in ((y0, 1.0 - ya), (y1, ya)):
                for ix, wx in ((x0, 1.0 - xa), (x1, xa)):
                    weight = wt[:, None, None] * wy[None, :, None] * wx[None, None, :]
                    gathered = volume[:, :, it[:, None, None], iy[None, :, None], ix[None, None, :]]
                    sample += gathered * weight

        aux_mean = sample[:, 3:].mean(axis=1) if c_lat > 3 else 0.0
        channel_samples = [
            sample[:, 0],
            sample[:, 1] if c_lat > 1 else sample[:, 0],
            sample[:, 2] if c_lat > 2 else sample[:, 0],
        ]

        frames = np.empty((b, 3, t, h, w))
        for ch in range(3):
            if c_lat >= 3:
                value = 0.8 * channel_samples[ch] + 0.2 * aux_mean
            else:
                value = channel_samples[ch % c_lat]
            value = value + 0.05 * sample[:, ch % c_lat]
            frames[:, ch] = np.clip(value, 0.0, 1.0)

        return frames.ravel(), (b, 3, t, h, w)


__all__ = ["VAEError", "VAE", "SyntheticVAE"]

# Guard against accidental use of ``math`` being dropped by tooling.
_TAU = math.tau