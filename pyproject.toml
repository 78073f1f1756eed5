[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mosaicmem"
version = "0.1.0"
description = "Spatial memory building blocks for video world models: pinhole cameras, point clouds, rotary embeddings, a synthetic VAE and inference backends"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "video-generation",
    "world-models",
    "spatial-memory",
    "point-cloud",
    "rotary-embedding",
    "vae",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mosaicmem"]

[tool.hatch.build.targets.sdist]
include = ["mosaicmem", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
