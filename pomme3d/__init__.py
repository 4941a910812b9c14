"""Readers for 3DMF models and AIFF sounds, with 3D geometry and matrix helpers."""

__version__ = "0.1.0"

__all__ = ["aiff", "fourcc", "geometry", "matrix", "metafile", "qd3d", "streams"]