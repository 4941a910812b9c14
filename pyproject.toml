[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pomme3d"
version = "0.1.0"
description = "Readers for QuickDraw 3D metafiles (3DMF) and AIFF sounds, with 3D geometry and matrix math"
requires-python = ">=3.10"
dependencies = []
keywords = ["3dmf", "quickdraw3d", "trimesh", "aiff", "aifc", "matrix", "geometry", "fourcc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Graphics :: 3D Modeling",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pomme3d"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
