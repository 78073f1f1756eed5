# mosaicmem

Building blocks for spatial memory in video world models: pinhole camera
intrinsics, coloured point clouds with ASCII PLY input and output, rotary
position embeddings (standard and at fractional positions), a synthetic depth
estimator, a synthetic VAE, and a backend layer that exchanges tensor payloads
with a synthetic in-process model or a child Python process.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `mosaicmem.intrinsics` | `CameraIntrinsics`: intrinsic matrix, projection, unprojection, bounds checks |
| `mosaicmem.pointcloud` | `Point3DColored`, `PointCloud3D`: merge, bounding box, voxel downsampling, centroid, sphere filter, PLY I/O |
| `mosaicmem.depth` | `DepthEstimator` interface, `SyntheticDepthEstimator`, `DepthError` |
| `mosaicmem.rope` | `RoPE`, `grid_positions_2d`, `grid_positions_3d` |
| `mosaicmem.warped_rope` | `WarpedRoPE`: rotations over (u, v, t) blocks at fractional positions |
| `mosaicmem.vae` | `VAE` interface, `SyntheticVAE`, `VAEError` |
| `mosaicmem.backend` | `BackendMode`, `AblationConfig`, `TensorPayload`, `BackendRequest`, `parse_response`, bridges, `create_backend_bridge` and the `BackendError` family |

## Examples

Project and unproject with pinhole intrinsics:

```python
from mosaicmem.intrinsics import CameraIntrinsics

intrinsics = CameraIntrinsics(500.0, 500.0, 320.0, 240.0, 640, 480)
pixel = intrinsics.project([1.0, 2.0, 5.0])      # array([420., 440.])
point = intrinsics.unproject(pixel, 5.0)         # array([1., 2., 5.])
intrinsics.project([0.0, 0.0, -1.0])             # None: behind the camera
intrinsics.is_in_bounds([100.0, 480.0])          # False
```

Build a point cloud, downsample it and write it as PLY:

```python
from mosaicmem.pointcloud import PointCloud3D

cloud = PointCloud3D()
for i in range(10):
    cloud.add_point([0.01 * i, 0.0, 0.0], (255, 0, 0))
cloud.add_point([4.0, 5.0, 6.0], (0, 255, 0))

print(len(cloud.voxel_downsample(1.0)))          # 2
print(cloud.bounding_box())
cloud.export_ply("cloud.ply")
loaded = PointCloud3D.import_ply("cloud.ply")
```

Synthetic depth and rotary embeddings:

```python
from mosaicmem.depth import SyntheticDepthEstimator
from mosaicmem.rope import RoPE, grid_positions_2d
from mosaicmem.warped_rope import WarpedRoPE

depth = SyntheticDepthEstimator(5.0, 2.0).estimate_depth(bytes(300), 10, 10)
print(depth[5][5])                               # 5.0 at the image centre

rope = RoPE(8, 100, 10000.0)
print(rope.rotate([1.0] * 8, 1))
print(grid_positions_2d(3, 4)[-1])               # (2, 3)

warped = WarpedRoPE(8, 64, 32)
rotated = warped.rotate([[1.0] * 24], [[15.5, 25.0, 3.0]])
```

Encode and decode with the synthetic VAE (tensors are flat, row-major
`[B, C, T, H, W]` arrays passed with their shape):

```python
from mosaicmem.vae import SyntheticVAE

vae = SyntheticVAE(spatial_factor=2, temporal_factor=2, latent_channels=8)
frames = [0.5] * (1 * 3 * 4 * 4 * 4)
latent, latent_shape = vae.encode(frames, (1, 3, 4, 4, 4))   # latent_shape == (1, 8, 2, 2, 2)
decoded, decoded_shape = vae.decode(latent, latent_shape)    # decoded_shape == (1, 3, 4, 4, 4)
```

Run inference through the synthetic backend:

```python
from mosaicmem.backend import BackendMode, TensorPayload, create_backend_bridge

bridge = create_backend_bridge(BackendMode.SYNTHETIC)
bridge.health_check()
frame = TensorPayload.from_f32([1.0, 2.0, 3.0, 4.0], [1, 2, 2])
depth = bridge.infer_depth(frame)
print(depth.shape, depth.data)                   # [1, 2, 2] [2.0, 3.0, 4.0, 5.0]
```

`TensorPayload.validate` raises `TensorShapeMismatch` when the data length
differs from the product of the shape.

## Real backend

`create_backend_bridge(BackendMode.REAL, checkpoint_path, real_backend_enabled)`
raises `CheckpointNotFound` when no checkpoint path is given or the path does
not exist, and `RealBackendFeatureDisabled` unless `real_backend_enabled` is
true. Otherwise it returns a `PythonSidecarBridge`, which sends each request as
JSON to `python3 -c <script>` with the checkpoint path in the
`MOSAICMEM_CHECKPOINT` environment variable and decodes the reply with
`parse_response`. The bundled script is a stub that always answers with an
error, so every call on this bridge raises `SidecarProtocolError`; timeouts
raise `SidecarTimeout` and failures to start the process `SidecarIOError`.

## What the package does not do

- It loads no trained model: depth, encoding, decoding and denoising are
  synthetic, and the real backend performs no inference.
- It has no camera pose, trajectory, point-cloud fusion, noise-scheduler or
  projective rotary-embedding components; `WarpedRoPE` only rotates vectors at
  positions you supply.
- It provides no command-line tool; everything is used as a library.