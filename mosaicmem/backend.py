"""Backend selection, tensor payload schemas and inference bridges."""

from __future__ import annotations

import json
import math
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

PathArg = Union[str, PathLike]

_SIDECAR_SCRIPT = (
    "import json, sys; req = json.loads(sys.stdin.read()); "
    "print(json.dumps({'kind': 'error', 'message': 'python sidecar stub not configured'}))"
)
_CHECKPOINT_ENV = "MOSAICMEM_CHECKPOINT"


class BackendMode(Enum):
    """Which inference backend drives the pipeline."""

    SYNTHETIC = "synthetic"
    REAL = "real"

    def label(self) -> str:
        """Bracketed tag shown in output, e.g. ``[synthetic]``."""
        return f"[{self.value}]"

    def __str__(self) -> str:
        return self.label()


@dataclass
class AblationConfig:
    """Switches for disabling parts of the memory pathway."""

    enable_memory: bool = True
    enable_prope: bool = True
    enable_warped_rope: bool = True
    enable_warped_latent: bool = True
    memory_gate_override: Optional[float] = None


class TensorDType(Enum):
    """Element type carried by a tensor payload."""

    F32 = "f32"
    BOOL = "bool"


class BackendError(Exception):
    """Base class for backend failures."""


class RealBackendFeatureDisabled(BackendError):
    """The real backend was requested but is not enabled."""

    def __init__(self) -> None:
        super().__init__("real backend requested but the real backend is disabled")


class CheckpointNotFound(BackendError):
    """The real backend's checkpoint is missing."""

    def __init__(self, path: Optional[PathArg] = None) -> None:
        self.path = Path(path) if path is not None else None
        suffix = f": {self.path}" if self.path is not None else ""
        super().__init__(f"checkpoint not found for real backend{suffix}")


class TensorShapeMismatch(BackendError):
    """A payload's data length does not match its shape."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"tensor payload shape mismatch: expected {expected} elements, got {actual}"
        )


class SidecarTimeout(BackendError):
    """The sidecar process did not finish in time."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"backend sidecar timed out after {timeout_ms} ms")


class SidecarProtocolError(BackendError):
    """The sidecar answered with something unexpected or an error."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"backend sidecar protocol error: {message}")


class SidecarIOError(BackendError):
    """The sidecar process could not be started or talked to."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"backend sidecar I/O error: {message}")


@dataclass
class TensorPayload:
    """A flat tensor with its shape and element type."""

    data: List[float]
    shape: List[int]
    dtype: TensorDType = TensorDType.F32

    @classmethod
    def from_f32(cls, data: Sequence[float], shape: Sequence[int]) -> "TensorPayload":
        return cls([float(value) for value in data], [int(dim) for dim in shape], TensorDType.F32)

    @classmethod
    def from_bool(cls, data: Sequence[bool], shape: Sequence[int]) -> "TensorPayload":
        """Store booleans as 1.0 / 0.0."""
        return cls(
            [1.0 if value else 0.0 for value in data],
            [int(dim) for dim in shape],
            TensorDType.BOOL,
        )

    def element_count(self) -> int:
        """Product of the shape (1 for an empty shape)."""
        return math.prod(self.shape)

    def validate(self) -> None:
        """Raise TensorShapeMismatch if the data length differs from the shape."""
        expected = self.element_count()
        if expected != len(self.data):
            raise TensorShapeMismatch(expected, len(self.data))

    def to_dict(self) -> Dict[str, Any]:
        return {"data": list(self.data), "shape": list(self.shape), "dtype": self.dtype.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TensorPayload":
        try:
            return cls(
                [float(value) for value in data["data"]],
                [int(dim) for dim in data["shape"]],
                TensorDType(data["dtype"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SidecarProtocolError(f"invalid tensor payload: {exc}") from exc


@dataclass
class BackendRequest:
    """A request sent to a backend, tagged by ``kind``."""

    kind: str
    tensors: Dict[str, TensorPayload] = field(default_factory=dict)
    timestep: Optional[float] = None
    text_embedding: Optional[List[List[float]]] = None

    @classmethod
    def health_check(cls) -> "BackendRequest":
        return cls("health_check")

    @classmethod
    def depth(cls, frame: TensorPayload) -> "BackendRequest":
        return cls("depth", {"frame": frame})

    @classmethod
    def vae_encode(cls, frames: TensorPayload) -> "BackendRequest":
        return cls("vae_encode", {"frames": frames})

    @classmethod
    def vae_decode(cls, latent: TensorPayload) -> "BackendRequest":
        return cls("vae_decode", {"latent": latent})

    @classmethod
    def denoise(
        cls,
        latent: TensorPayload,
        timestep: float,
        text_embedding: Sequence[Sequence[float]],
    ) -> "BackendRequest":
        return cls(
            "denoise",
            {"latent": latent},
            float(timestep),
            [[float(value) for value in token] for token in text_embedding],
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind}
        for name, payload in self.tensors.items():
            result[name] = payload.to_dict()
        if self.timestep is not None:
            result["timestep"] = self.timestep
        if self.text_embedding is not None:
            result["text_embedding"] = [list(token) for token in self.text_embedding]
        return result


def parse_response(data: Union[str, bytes, Mapping[str, Any]]) -> Union[BackendMode, TensorPayload]:
    """Decode a backend response.

    A health response yields its BackendMode, a tensor response its
    TensorPayload; an error response or malformed data raises
    SidecarProtocolError.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise SidecarProtocolError(str(exc)) from exc
    if not isinstance(data, Mapping):
        raise SidecarProtocolError("response must be a JSON object")
    kind = data.get("kind")
    if kind == "healthy":
        try:
            return BackendMode(data["backend"])
        except (KeyError, ValueError) as exc:
            raise SidecarProtocolError(f"invalid health response: {exc}") from exc
    if kind == "tensor":
        return TensorPayload.from_dict(data)
    if kind == "error":
        raise SidecarProtocolError(str(data.get("message", "")))
    raise SidecarProtocolError(f"unknown response kind: {kind!r}")


def validate_backend_configuration(
    mode: BackendMode,
    checkpoint_path: Optional[PathArg] = None,
    real_backend_enabled: bool = False,
) -> None:
    """Check that the chosen backend can run; raises a BackendError if not."""
    if mode is BackendMode.SYNTHETIC:
        return
    if checkpoint_path is None:
        raise CheckpointNotFound(None)
    if not Path(checkpoint_path).exists():
        raise CheckpointNotFound(checkpoint_path)
    if not real_backend_enabled:
        raise RealBackendFeatureDisabled()


class BackendBridge(ABC):
    """Inference operations a backend provides."""

    @abstractmethod
    def health_check(self) -> None:
        """Raise a BackendError if the backend is not usable."""

    @abstractmethod
    def infer_depth(self, frame: TensorPayload) -> TensorPayload:
        """Depth map for a frame."""

    @abstractmethod
    def infer_vae_encode(self, frames: TensorPayload) -> TensorPayload:
        """Latent for frames."""

    @abstractmethod
    def infer_vae_decode(self, latent: TensorPayload) -> TensorPayload:
        """Frames for a latent."""

    @abstractmethod
    def infer_denoise(
        self,
        latent: TensorPayload,
        timestep: float,
        text_embedding: Sequence[Sequence[float]],
    ) -> TensorPayload:
        """Noise prediction for a latent."""


def _passthrough(payload: TensorPayload) -> TensorPayload:
    payload.validate()
    return TensorPayload(list(payload.data), list(payload.shape), payload.dtype)


class SyntheticBridge(BackendBridge):
    """A deterministic in-process backend for tests and demos."""

    def health_check(self) -> None:
        return None

    def infer_depth(self, frame: TensorPayload) -> TensorPayload:
        """Channel mean magnitude plus one, over the last two dims."""
        frame.validate()
        if len(frame.shape) < 2:
            return _passthrough(frame)
        height, width = frame.shape[-2], frame.shape[-1]
        plane = height * width
        channels = 1 if plane == 0 else len(frame.data) // plane
        channels = max(channels, 1)
        data = frame.data
        depth = []
        for pixel in range(plane):
            total = sum(
                data[idx]
                for idx in range(pixel, channels * plane, plane)
                if idx < len(data)
            )
            depth.append(abs(total / channels) + 1.0)
        return TensorPayload.from_f32(depth, [1, height, width])

    def infer_vae_encode(self, frames: TensorPayload) -> TensorPayload:
        return _passthrough(frames)

    def infer_vae_decode(self, latent: TensorPayload) -> TensorPayload:
        return _passthrough(latent)

    def infer_denoise(
        self,
        latent: TensorPayload,
        timestep: float,
        text_embedding: Sequence[Sequence[float]],
    ) -> TensorPayload:
        """Scale the latent by a factor from the timestep and the mean text signal."""
        latent.validate()
        if not text_embedding:
            text_signal = 0.0
        else:
            flat = [float(value) for token in text_embedding for value in token]
            text_signal = sum(flat) / max(len(flat), 1)
        clamped = min(max(float(timestep), 0.0), 1.0)
        scale = (1.0 - clamped) * 0.15 + math.tanh(text_signal) * 0.05
        return TensorPayload.from_f32([value * scale for value in latent.data], latent.shape)


class PythonSidecarBridge(BackendBridge):
    """Sends each request as JSON to a child Python process and reads its JSON reply."""

    def __init__(
        self,
        checkpoint_path: PathArg,
        python_executable: str = "python3",
        timeout_ms: int = 30_000,
    ) -> None:
        self.checkpoint_path = Path(checkpoint_path)
        self.python_executable = python_executable
        self.timeout_ms = timeout_ms

    def _request(self, request: BackendRequest) -> Union[BackendMode, TensorPayload]:
        payload = json.dumps(request.to_dict()).encode("utf-8")
        env = dict(os.environ)
        env[_CHECKPOINT_ENV] = str(self.checkpoint_path)
        try:
            completed = subprocess.run(
                [self.python_executable, "-c", _SIDECAR_SCRIPT],
                input=payload,
                stdout=subprocess.PIPE,
                env=env,
                timeout=max(self.timeout_ms, 1) / 1000.0,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise SidecarTimeout(self.timeout_ms) from exc
        except OSError as exc:
            raise SidecarIOError(str(exc)) from exc
        return parse_response(completed.stdout)

    def _tensor_response(self, request: BackendRequest) -> TensorPayload:
        response = self._request(request)
        if isinstance(response, TensorPayload):
            return response
        raise SidecarProtocolError("expected tensor response, received health check")

    def health_check(self) -> None:
        response = self._request(BackendRequest.health_check())
        if isinstance(response, TensorPayload):
            raise SidecarProtocolError("expected health response, received tensor")

    def infer_depth(self, frame: TensorPayload) -> TensorPayload:
        return self._tensor_response(BackendRequest.depth(frame))

    def infer_vae_encode(self, frames: TensorPayload) -> TensorPayload:
        return self._tensor_response(BackendRequest.vae_encode(frames))

    def infer_vae_decode(self, latent: TensorPayload) -> TensorPayload:
        return self._tensor_response(BackendRequest.vae_decode(latent))

    def infer_denoise(
        self,
        latent: TensorPayload,
        timestep: float,
        text_embedding: Sequence[Sequence[float]],
    ) -> TensorPayload:
        return self._tensor_response(BackendRequest.denoise(latent, timestep, text_embedding))


def create_backend_bridge(
    mode: BackendMode,
    checkpoint_path: Optional[PathArg] = None,
    real_backend_enabled: bool = False,
) -> BackendBridge:
    """Build the bridge for ``mode``; the real one needs an existing checkpoint and enabling."""
    if mode is BackendMode.SYNTHETIC:
        return SyntheticBridge()
    validate_backend_configuration(mode, checkpoint_path, real_backend_enabled)
    return PythonSidecarBridge(checkpoint_path, "python3", 30_000)