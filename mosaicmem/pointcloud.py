"""Coloured 3D point clouds with voxel downsampling and ASCII PLY I/O."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

PathArg = Union[str, PathLike]
Color = Tuple[int, int, int]


@dataclass(eq=False)
class Point3DColored:
    """A 3D point with an RGB colour and an optional normal."""

    position: np.ndarray
    color: Color = (0, 0, 0)
    normal: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        self.color = tuple(int(channel) for channel in self.color)
        if self.normal is not None:
            self.normal = np.asarray(self.normal, dtype=np.float64).reshape(3)


def _parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise ValueError("Bad float") from exc


def _parse_u8(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise ValueError("Bad u8") from exc
    if not 0 <= value <= 255:
        raise ValueError("Bad u8")
    return value


@dataclass
class PointCloud3D:
    """A collection of coloured 3D points."""

    points: List[Point3DColored] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point3DColored]:
        return iter(self.points)

    def add_point(self, position: Sequence[float], color: Sequence[int]) -> None:
        """Append a point without a normal."""
        self.points.append(Point3DColored(position, tuple(color)))

    def merge(self, other: "PointCloud3D") -> None:
        """Append all points of another cloud to this one."""
        self.points.extend(other.points)

    def positions(self) -> np.ndarray:
        """All positions as an (N, 3) array."""
        if not self.points:
            return np.zeros((0, 3))
        return np.stack([point.position for point in self.points])

    def bounding_box(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Axis-aligned (min, max) corners, or None for an empty cloud."""
        if not self.points:
            return None
        positions = self.positions()
        return positions.min(axis=0), positions.max(axis=0)

    def voxel_downsample(self, voxel_size: float) -> "PointCloud3D":
        """Keep the first point seen in each voxel cell."""
        voxels: Dict[Tuple[int, int, int], Point3DColored] = {}
        for point in self.points:
            key = tuple(math.floor(coord / voxel_size) for coord in point.position)
            voxels.setdefault(key, point)
        return PointCloud3D(list(voxels.values()))

    def centroid(self) -> Optional[np.ndarray]:
        """Mean position, or None for an empty cloud."""
        if not self.points:
            return None
        return self.positions().mean(axis=0)

    def filter_sphere(self, center: Sequence[float], radius: float) -> "PointCloud3D":
        """Points within ``radius`` of ``center`` (boundary included)."""
        center_v = np.asarray(center, dtype=np.float64)
        r2 = radius * radius
        return PointCloud3D(
            [
                point
                for point in self.points
                if float(np.sum((point.position - center_v) ** 2)) <= r2
            ]
        )

    def export_ply(self, path: PathArg) -> None:
        """Write the cloud as an ASCII PLY file."""
        has_normals = any(point.normal is not None for point in self.points)
        lines = [
            "ply",
            "format ascii 1.0",
            f"element vertex {len(self.points)}",
            "property float x",
            "property float y",
            "property float z",
            "property uchar red",
            "property uchar green",
            "property uchar blue",
        ]
        if has_normals:
            lines += ["property float nx", "property float ny", "property float nz"]
        lines.append("end_header")
        for point in self.points:
            fields = [repr(float(coord)) for coord in point.position]
            fields += [str(channel) for channel in point.color]
            if has_normals:
                normal = point.normal if point.normal is not None else np.zeros(3)
                fields += [repr(float(coord)) for coord in normal]
            lines.append(" ".join(fields))
        Path(path).write_text("\n".join(lines) + "\n", encoding="ascii")

    @classmethod
    def import_ply(cls, path: PathArg) -> "PointCloud3D":
        """Read an ASCII PLY file; raises ValueError on malformed content."""
        with open(path, "r", encoding="ascii") as handle:
            num_vertices = 0
            has_normals = False
            while True:
                line = handle.readline()
                if not line:
                    raise ValueError("Unexpected end of header")
                trimmed = line.strip()
                if trimmed.startswith("element vertex"):
                    parts = trimmed.split()
                    if len(parts) > 2:
                        try:
                            num_vertices = int(parts[2])
                        except ValueError as exc:
                            raise ValueError("Invalid vertex count") from exc
                        if num_vertices < 0:
                            raise ValueError("Invalid vertex count")
                elif trimmed == "property float nx":
                    has_normals = True
                elif trimmed == "end_header":
                    break

            points: List[Point3DColored] = []
            for _, line in zip(range(num_vertices), handle):
                parts = line.split()
                if len(parts) < 6:
                    continue
                position = [_parse_float(text) for text in parts[:3]]
                color = tuple(_parse_u8(text) for text in parts[3:6])
                normal = None
                if has_normals and len(parts) >= 9:
                    normal = [_parse_float(text) for text in parts[6:9]]
                points.append(Point3DColored(position, color, normal))
        return cls(points)