"""Camera intrinsics, point clouds, rotary embeddings, a synthetic depth estimator and VAE, and inference backends for spatial memory in video world models."""

__version__ = "0.1.0"